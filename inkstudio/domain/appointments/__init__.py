"""
Appointments Domain

Admin CRUD, rescheduling and status transitions for studio appointments.
Writes that move an appointment in time go through the overlap checker.
"""

from .router import router

__all__ = ["router"]
