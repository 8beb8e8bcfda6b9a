# app/api/v1/routers/transactions.py
from fastapi import APIRouter, Depends
from typing import Annotated
import time
import logging

from app.api.deps import get_lifecycle
from app.api.v1.schemas.marketplace import TransactionIn, TransactionOut
from app.core.identity import Viewer, require_viewer
from app.domain.services.lifecycle_svc import ProductLifecycleManager
from app.utils.ids import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transactions"])


@router.post("/transactions/{item_id}", response_model=TransactionOut, status_code=201)
async def add_transaction(
    item_id: str,
    body: TransactionIn,
    viewer: Annotated[Viewer, Depends(require_viewer)],
    lifecycle: ProductLifecycleManager = Depends(get_lifecycle),
):
    """
    Append a transaction to a product's ledger.
    The caller becomes the product owner; status follows the action
    (submitted → available, revitalized/submittedRevitalized → restored, sold → sold).
    """
    pid = parse_id(item_id, field="item_id")
    logger.info("Request: add_transaction item_id=%s user_id=%s action=%s", pid, viewer.user_id, body.action)
    start_time = time.perf_counter()

    transaction, product = await lifecycle.record_transaction(
        pid,
        viewer.user_id,
        body.action,
        description=body.description,
        price=body.price,
        image_data=body.image_data,
    )

    logger.info(
        "Response: add_transaction txn_id=%s status=%s elapsed_time=%.4fs",
        transaction.id, product.status, time.perf_counter() - start_time,
    )
    return {"transaction": transaction, "status": product.status}
