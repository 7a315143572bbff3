"""SQLAlchemy models for PriceCrawler.

All models are imported here so metadata.create_all() can discover them.
"""

from pricecrawler.models.base import Base
from pricecrawler.models.product import Product

__all__ = [
    "Base",
    "Product",
]
