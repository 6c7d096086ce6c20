"""
Data formatting utilities.
"""

from typing import Any, Dict, List, Optional


def format_error_response(error: Exception, status_code: int = 500) -> Dict[str, Any]:
    """
    Format error response for API.

    Args:
        error: Exception object
        status_code: HTTP status code

    Returns:
        Formatted error response dictionary
    """
    response = {
        "error": error.__class__.__name__,
        "detail": str(error),
        "status_code": status_code,
    }

    if getattr(error, "field", None):
        response["field"] = error.field

    if getattr(error, "status_code", None) and error.status_code != status_code:
        response["engine_status_code"] = error.status_code

    return response


def format_price(value: Any) -> Optional[float]:
    """Coerce a catalog price to float; blanks and unparseable values become None, zero stays 0.0."""
    if value is None or value == "":
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price


def format_product_hit(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shape an engine product document for the suggestion JSON contract.

    Manufacturer falls back to the first brand when unset.
    """
    manufacturer = document.get("manufacturer") or ""
    brands = document.get("brands") or []
    if not manufacturer and isinstance(brands, list) and brands:
        manufacturer = brands[0] or ""

    return {
        "id": document.get("id"),
        "name": document.get("name"),
        "permalink": document.get("permalink"),
        "image": document.get("image") or "",
        "price": document.get("price"),
        "regular_price": document.get("regular_price"),
        "sale_price": document.get("sale_price"),
        "stock_status": document.get("stock_status") or "instock",
        "stock_quantity": document.get("stock_quantity"),
        "manufacturer": manufacturer,
        "brands": brands,
    }


def format_term_hit(document: Dict[str, Any]) -> Dict[str, Any]:
    """Shape an engine category or brand document for the suggestion JSON contract."""
    return {
        "id": document.get("id"),
        "name": document.get("name"),
        "permalink": document.get("permalink"),
        "image": document.get("image") or "",
    }


def format_term_hits(hits: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [format_term_hit(hit.get("document") or {}) for hit in hits]
