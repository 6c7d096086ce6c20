"""
Collection types known to the search bridge.

Each type carries its engine schema and the function that turns a catalog
row into an engine document. Dispatch is an exhaustive if/elif over the
enum so an unhandled type fails loudly instead of silently.
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional

from searchbridge.models.catalog import Brand, Category, ContentItem
from searchbridge.utils.exceptions import InvalidInputError
from searchbridge.utils.formatters import format_price


class CollectionType(str, Enum):
    PRODUCTS = "products"
    CATEGORIES = "categories"
    BRANDS = "brands"

    @property
    def base_name(self) -> str:
        """Collection name before the configured prefix is applied."""
        return self.value

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: str) -> "CollectionType":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise InvalidInputError(f"Unknown collection type '{value}' (expected one of: {allowed})", field="type")


def _field(name: str, type_: str, *, optional: bool = False, facet: bool = False, sort: bool = False) -> Dict[str, Any]:
    field: Dict[str, Any] = {"name": name, "type": type_}
    if optional:
        field["optional"] = True
    if facet:
        field["facet"] = True
    if sort:
        field["sort"] = True
    return field


def product_schema(name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "fields": [
            _field("id", "string"),
            _field("name", "string", sort=True),
            _field("description", "string", optional=True),
            _field("short_description", "string", optional=True),
            _field("permalink", "string"),
            _field("image", "string", optional=True),
            _field("price", "float", optional=True, sort=True),
            _field("regular_price", "float", optional=True),
            _field("sale_price", "float", optional=True),
            _field("sku", "string", optional=True),
            _field("stock_status", "string", facet=True, sort=True),
            _field("categories", "string[]", facet=True),
            _field("category_ids", "int32[]", facet=True),
            _field("brands", "string[]", facet=True),
            _field("brand_ids", "int32[]", facet=True),
            _field("tags", "string[]", facet=True),
            _field("status", "string", facet=True),
            _field("is_on_sale", "bool", facet=True, sort=True),
            _field("sale_boost", "float", optional=True, sort=True),
            _field("manufacturer", "string", optional=True),
            _field("stock_quantity", "int32", optional=True),
        ],
        "default_sorting_field": "name",
    }


def category_schema(name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "fields": [
            _field("id", "string"),
            _field("name", "string", sort=True),
            _field("description", "string", optional=True),
            _field("permalink", "string"),
            _field("image", "string", optional=True),
            _field("parent_id", "int32", optional=True),
            _field("count", "int32", optional=True),
        ],
        "default_sorting_field": "name",
    }


def brand_schema(name: str) -> Dict[str, Any]:
    return {
        "name": name,
        "fields": [
            _field("id", "string"),
            _field("name", "string", sort=True),
            _field("description", "string", optional=True),
            _field("permalink", "string"),
            _field("image", "string", optional=True),
            _field("count", "int32", optional=True),
        ],
        "default_sorting_field": "name",
    }


def prepare_product_document(item: ContentItem, sale_boost: float = 1.5) -> Dict[str, Any]:
    categories = list(item.categories or [])
    brands = list(item.brands or [])
    brand_names = [brand.name for brand in brands]

    # The first brand wins over the free-text manufacturer field
    manufacturer = brand_names[0] if brand_names else (item.manufacturer or "")

    stock_quantity: Optional[int] = None
    if item.manage_stock and item.stock_quantity is not None:
        stock_quantity = int(item.stock_quantity)

    is_on_sale = item.is_on_sale

    return {
        "id": str(item.id),
        "name": item.title,
        "description": item.description or "",
        "short_description": item.short_description or "",
        "permalink": item.permalink or "",
        "image": item.image or "",
        "price": format_price(item.price),
        "regular_price": format_price(item.regular_price),
        "sale_price": format_price(item.sale_price),
        "sku": item.sku or "",
        "stock_status": item.stock_status or "instock",
        "stock_quantity": stock_quantity,
        "categories": [category.name for category in categories],
        "category_ids": [int(category.id) for category in categories],
        "brands": brand_names,
        "brand_ids": [int(brand.id) for brand in brands],
        "tags": [str(tag) for tag in (item.tags or [])],
        "status": item.status,
        "is_on_sale": is_on_sale,
        "sale_boost": float(sale_boost) if is_on_sale else 1.0,
        "manufacturer": manufacturer,
    }


def prepare_category_document(category: Category, count: int = 0) -> Dict[str, Any]:
    return {
        "id": str(category.id),
        "name": category.name,
        "description": category.description or "",
        "permalink": category.permalink or "",
        "image": category.image or "",
        "parent_id": int(category.parent_id) if category.parent_id else None,
        "count": int(count),
    }


def prepare_brand_document(brand: Brand, count: int = 0) -> Dict[str, Any]:
    return {
        "id": str(brand.id),
        "name": brand.name,
        "description": brand.description or "",
        "permalink": brand.permalink or "",
        "image": brand.image or "",
        "count": int(count),
    }


def build_schema(collection_type: CollectionType, name: str) -> Dict[str, Any]:
    """Return the engine schema for ``collection_type`` under the (prefixed) ``name``."""
    if collection_type is CollectionType.PRODUCTS:
        return product_schema(name)
    elif collection_type is CollectionType.CATEGORIES:
        return category_schema(name)
    elif collection_type is CollectionType.BRANDS:
        return brand_schema(name)
    raise ValueError(f"Unhandled collection type: {collection_type!r}")


def prepare_document(
    collection_type: CollectionType,
    row: Any,
    *,
    sale_boost: float = 1.5,
    term_counts: Optional[Mapping[int, int]] = None,
) -> Dict[str, Any]:
    """
    Turn a catalog row into an engine document.

    Args:
        collection_type: Which collection the document goes to
        row: ContentItem, Category or Brand matching the type
        sale_boost: Boost written on products that are on sale
        term_counts: Product counts per category/brand id

    Returns:
        Engine document
    """
    counts = term_counts or {}
    if collection_type is CollectionType.PRODUCTS:
        return prepare_product_document(row, sale_boost=sale_boost)
    elif collection_type is CollectionType.CATEGORIES:
        return prepare_category_document(row, count=counts.get(row.id, 0))
    elif collection_type is CollectionType.BRANDS:
        return prepare_brand_document(row, count=counts.get(row.id, 0))
    raise ValueError(f"Unhandled collection type: {collection_type!r}")
