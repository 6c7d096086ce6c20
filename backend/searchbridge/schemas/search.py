"""
Pydantic schemas for the storefront search endpoints.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class SuggestRequest(BaseModel):
    query: str = Field("", max_length=200)
    type: Literal["all", "products", "categories", "brands"] = "all"


class ProductSuggestion(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    permalink: Optional[str] = None
    image: str = ""
    price: Optional[float] = None
    regular_price: Optional[float] = None
    sale_price: Optional[float] = None
    stock_status: str = "instock"
    stock_quantity: Optional[int] = None
    manufacturer: str = ""
    brands: List[str] = []


class TermSuggestion(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    permalink: Optional[str] = None
    image: str = ""


class SuggestResponse(BaseModel):
    products: List[ProductSuggestion] = []
    categories: List[TermSuggestion] = []
    brands: List[TermSuggestion] = []


class RecommendedResponse(BaseModel):
    products: List[ProductSuggestion] = []


class ListingItem(BaseModel):
    id: int
    title: str
    permalink: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = None
    regular_price: Optional[float] = None
    sale_price: Optional[float] = None
    stock_status: Optional[str] = None
    sku: Optional[str] = None

    class Config:
        from_attributes = True


class ListingResponse(BaseModel):
    items: List[ListingItem]
    ordered_identifiers: List[str]
    total_count: int
    total_pages: int
    current_page: int
    page_size: int


class SearchLogRequest(BaseModel):
    query: str = Field(..., max_length=255)
    has_results: bool = True
    user_id: Optional[str] = Field(None, max_length=64)
