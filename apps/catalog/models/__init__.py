"""
Catalog app models.

Imports every model from its own file to provide a single import point.
"""

from .part import Part
from .service import Service
from .stock_transaction import StockTransaction

__all__ = [
    "Part",
    "Service",
    "StockTransaction",
]
