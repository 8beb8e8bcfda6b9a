# Constants for the product lifecycle and recommendation aggregation.
from app.domain.models.product import ProductStatus, TransactionAction

FINAL_K = 10  # Target size of every recommendation list

# Status a product takes after a transaction with the given action.
# Closed mapping: an action missing here is rejected, never defaulted.
STATUS_FOR_ACTION = {
    TransactionAction.SUBMITTED: ProductStatus.AVAILABLE,
    TransactionAction.SUBMITTED_REVITALIZED: ProductStatus.RESTORED,
    TransactionAction.REVITALIZED: ProductStatus.RESTORED,
    TransactionAction.SOLD: ProductStatus.SOLD,
}

# Rating score bounds (inclusive)
MIN_SCORE = 0.0
MAX_SCORE = 5.0

# Pagination defaults shared by the list endpoints
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
