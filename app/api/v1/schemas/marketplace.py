# api/v1/schemas/marketplace.py
from pydantic import BaseModel, Field
from typing import List, Optional

from app.domain.models.product import EnrichedProduct, Rating, Transaction


class ProductIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(0.0, ge=0)
    category: str = ""
    sub_category: str = ""
    image_data: Optional[str] = Field(None, description="Base64 encoded image")


class TransactionIn(BaseModel):
    description: str = ""
    action: str = Field(..., description="submitted | submittedRevitalized | revitalized | sold")
    image_data: Optional[str] = Field(None, description="Base64 encoded image")
    price: Optional[float] = Field(None, ge=0)


class RatingIn(BaseModel):
    product_id: str
    score: float


class ProductOut(BaseModel):
    product: EnrichedProduct


class ProductListOut(BaseModel):
    products: List[EnrichedProduct]


class PaginatedProductListOut(ProductListOut):
    page: int
    count: int
    total: int  # items in this page


class TransactionOut(BaseModel):
    message: str = "Transaction added successfully"
    transaction: Transaction
    status: str


class RatingOut(BaseModel):
    rating: Rating


class RatingListOut(BaseModel):
    ratings: List[Rating]


class RatingAverageOut(BaseModel):
    average: float
    count: int
