"""Customer service - Business logic for the customer book"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import CustomerExistsError, CustomerNotFoundError, StorageError
from ...models import Customer
from .repository import CustomerRepository
from .schemas import CustomerCreate

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = CustomerRepository()

    def get_customer(self, customer_id: str) -> Customer:
        customer = self.repo.get_customer(self.db, customer_id)
        if not customer:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return customer

    def list_customers(self, search: Optional[str] = None, page: int = 1, limit: int = 50) -> tuple[list[Customer], int]:
        return self.repo.list_customers(self.db, search=search, page=page, limit=limit)

    def create_customer(self, data: CustomerCreate) -> Customer:
        """
        Create a customer from the admin form.

        Raises CustomerExistsError when the email is already on file. A tattoo
        style preference is kept as a note on the customer.
        """
        if self.repo.get_by_email(self.db, data.email):
            raise CustomerExistsError(f"A customer with email {data.email} already exists")

        first_name, _, last_name = data.name.partition(" ")
        customer = self.repo.add_customer(
            self.db,
            first_name=first_name,
            last_name=last_name.strip() or None,
            email=data.email,
            phone=data.phone or None,
            personal_notes=data.notes or None,
        )
        if data.tattoo_style:
            self.repo.add_note(self.db, customer, f"Tattoo style preference: {data.tattoo_style}")

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create customer {data.email}: {e}")
            raise StorageError(f"Failed to save customer: {e}") from e

        self.db.refresh(customer)
        logger.info(f"👤 Customer created: {customer.id}")
        return customer
