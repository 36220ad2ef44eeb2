"""
Customers Domain

Admin listing, lookup and creation of studio customers.
"""

from .router import router

__all__ = ["router"]
