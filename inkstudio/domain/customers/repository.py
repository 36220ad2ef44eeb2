"""Customer repository - Database operations for customers"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload

from ...models import Customer, Note


class CustomerRepository:
    """Repository for customer database operations"""

    @staticmethod
    def get_customer(db: Session, customer_id: str) -> Optional[Customer]:
        return db.query(Customer).filter(Customer.id == customer_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Customer]:
        """Emails match case-insensitively"""
        return db.query(Customer).filter(func.lower(Customer.email) == email.strip().lower()).first()

    @staticmethod
    def list_customers(
        db: Session,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Customer], int]:
        query = db.query(Customer)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Customer.first_name.ilike(pattern),
                    Customer.last_name.ilike(pattern),
                    Customer.email.ilike(pattern),
                    Customer.phone.ilike(pattern),
                )
            )

        total = query.count()
        items = (
            query.options(selectinload(Customer.appointments))
            .order_by(Customer.created_at.desc(), Customer.first_name)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def add_customer(db: Session, **customer_data) -> Customer:
        """Stage a new customer; caller commits"""
        customer = Customer(**customer_data)
        db.add(customer)
        db.flush()
        return customer

    @staticmethod
    def add_note(db: Session, customer: Customer, content: str, note_type: str = "admin") -> Note:
        note = Note(content=content, type=note_type, customer_id=customer.id)
        db.add(note)
        return note
