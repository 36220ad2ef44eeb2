"""Customer router - FastAPI endpoints for the studio admin"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...errors import CustomerExistsError, CustomerNotFoundError, StorageError
from .schemas import CustomerCreate, CustomerListResponse, CustomerResponse
from .service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"], dependencies=[Depends(require_admin)])


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    return CustomerService(db)


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    search: Optional[str] = Query(None, description="Matches name, email or phone"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: CustomerService = Depends(get_customer_service),
):
    """Get customers, newest first"""
    items, total = service.list_customers(search=search, page=page, limit=limit)
    return CustomerListResponse(
        customers=[CustomerResponse.model_validate(c) for c in items],
        total=total,
        page=page,
        limit=limit,
        pageCount=math.ceil(total / limit),
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(customer_id: str, service: CustomerService = Depends(get_customer_service)):
    try:
        return service.get_customer(customer_id)
    except CustomerNotFoundError:
        raise HTTPException(status_code=404, detail="Customer not found")


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(data: CustomerCreate, service: CustomerService = Depends(get_customer_service)):
    try:
        return service.create_customer(data)
    except CustomerExistsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StorageError as e:
        logger.error(f"❌ Customer creation failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to create customer")
