"""Repository layer for database operations.

This module provides repository classes for materials and products outside
the stock ledger.
"""

from warehouse.repositories.material_repository import MaterialRepository
from warehouse.repositories.product_repository import ProductRepository

__all__ = [
    "MaterialRepository",
    "ProductRepository",
]
