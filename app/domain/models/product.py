from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, timezone
import random

from app.utils.ids import new_id


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductStatus(str, Enum):
    AVAILABLE = "available"
    RESTORED = "restored"
    RESTORED_AVAILABLE = "restoredAvailable"
    SOLD = "sold"


class TransactionAction(str, Enum):
    SUBMITTED = "submitted"
    SUBMITTED_REVITALIZED = "submittedRevitalized"
    REVITALIZED = "revitalized"
    SOLD = "sold"


class CandidateSource(str, Enum):
    CONTENT = "content"
    COLLABORATIVE = "collaborative"
    ITEM = "item"
    RANDOM = "random"


class Product(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    name: str
    description: str = ""
    price: float = 0.0
    category: str = ""
    sub_category: str = ""
    status: ProductStatus = ProductStatus.AVAILABLE
    created_at: datetime = Field(default_factory=utcnow)
    # Fixed at creation; gives a stable order for random pagination
    shuffle_key: float = Field(default_factory=random.random)

    model_config = {"frozen": True, "use_enum_values": True, "validate_default": True}


class Transaction(BaseModel):
    id: str = Field(default_factory=new_id)
    item_id: str
    user_id: str
    action: TransactionAction
    description: str = ""
    image_url: Optional[str] = None
    price: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True, "use_enum_values": True}


class Rating(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    product_id: str
    score: float
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"frozen": True}


class RecommendationCandidate(BaseModel):
    product_id: str
    source: CandidateSource
    score: Optional[float] = None

    model_config = {"frozen": True, "use_enum_values": True}


class OwnerSummary(BaseModel):
    id: str
    name: str = ""
    image_url: Optional[str] = None
    verified: bool = False
    premium_until: Optional[str] = None


class EnrichedProduct(BaseModel):
    """Externally visible product: ledger, rating aggregate, owner summary."""
    id: str
    user: OwnerSummary
    name: str
    description: str
    price: float
    category: str
    sub_category: str
    status: str
    created_at: datetime
    transactions: List[Transaction] = []
    rating_average: float = 0.0
    rating_count: int = 0
    rating: float = 0.0  # requesting user's own score
