"""
Shared test fixtures for the repokit library.

Usage:
    from tests.fixtures import Base, Customer, Order, OrderLine
"""

from tests.fixtures.models import Base, Customer, NotMapped, Order, OrderLine

__all__ = [
    "Base",
    "Customer",
    "Order",
    "OrderLine",
    "NotMapped",
]
