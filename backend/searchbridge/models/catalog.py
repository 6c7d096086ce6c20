"""
Host catalog models.

The catalog stores every content type in one table, the way the storefront
does; products carry their commerce fields as nullable columns.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from searchbridge.core.database import Base


PRODUCT_CONTENT_TYPE = "product"
PUBLISHED_STATUS = "publish"


item_categories = Table(
    "content_item_categories",
    Base.metadata,
    Column("item_id", Integer, ForeignKey("content_items.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

item_brands = Table(
    "content_item_brands",
    Base.metadata,
    Column("item_id", Integer, ForeignKey("content_items.id", ondelete="CASCADE"), primary_key=True),
    Column("brand_id", Integer, ForeignKey("brands.id", ondelete="CASCADE"), primary_key=True),
)


class ContentItem(Base):
    """A listable catalog entry (product, page, post...)."""

    __tablename__ = "content_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_type = Column(String(32), nullable=False, default=PRODUCT_CONTENT_TYPE, index=True)
    status = Column(String(20), nullable=False, default=PUBLISHED_STATUS, index=True)

    title = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    permalink = Column(String(512), nullable=True)
    description = Column(Text, nullable=True)
    short_description = Column(Text, nullable=True)
    image = Column(String(512), nullable=True)

    # Commerce fields (products only)
    sku = Column(String(100), nullable=True, index=True)
    price = Column(Float, nullable=True)
    regular_price = Column(Float, nullable=True)
    sale_price = Column(Float, nullable=True)
    stock_status = Column(String(20), nullable=True, default="instock")
    manage_stock = Column(Boolean, nullable=False, default=False)
    stock_quantity = Column(Integer, nullable=True)
    manufacturer = Column(String(255), nullable=True)
    tags = Column(JSON, nullable=True)

    # Listing behaviour
    is_sticky = Column(Boolean, nullable=False, default=False)
    menu_order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    categories = relationship("Category", secondary=item_categories, lazy="selectin")
    brands = relationship("Brand", secondary=item_brands, lazy="selectin")

    @property
    def is_on_sale(self) -> bool:
        if self.sale_price is None or self.regular_price is None:
            return False
        return self.sale_price < self.regular_price

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED_STATUS

    def __repr__(self) -> str:
        return f"<ContentItem(id={self.id}, type='{self.content_type}', title='{self.title}')>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    permalink = Column(String(512), nullable=True)
    image = Column(String(512), nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)


class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    permalink = Column(String(512), nullable=True)
    image = Column(String(512), nullable=True)
