"""
Database models for the catalog search bridge.
"""

from .catalog import ContentItem, Category, Brand, PRODUCT_CONTENT_TYPE, PUBLISHED_STATUS
from .search_log import SearchLog

__all__ = [
    "ContentItem",
    "Category",
    "Brand",
    "SearchLog",
    "PRODUCT_CONTENT_TYPE",
    "PUBLISHED_STATUS",
]
