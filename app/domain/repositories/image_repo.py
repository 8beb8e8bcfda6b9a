# app/domain/repositories/image_repo.py
from __future__ import annotations
from pathlib import Path
import base64
import binascii
import logging

from app.core.errors import InvalidInputError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB


class LocalImageStore:
    """
    Stores transaction photos on local disk under `<root>/images/<key>`.
    The returned key (e.g. "<transaction_id>.jpg") is what the ledger keeps
    as `image_url` and what the content-based scorer reports back as `name`.
    """

    def __init__(self, root: str):
        self.root = Path(root) / "images"

    def put(self, key: str, image_data: str) -> str:
        try:
            raw = base64.b64decode(image_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError("image_data is not valid base64", details={"error": str(e)})

        if len(raw) > MAX_IMAGE_BYTES:
            raise InvalidInputError(
                f"Image too large. Max size is {MAX_IMAGE_BYTES} bytes.",
                details={"bytes": len(raw)},
            )

        self.root.mkdir(parents=True, exist_ok=True)
        with open(self.root / key, "wb") as f:
            f.write(raw)
        logger.info("image stored key=%s bytes=%s", key, len(raw))
        return key

    def delete(self, key: str) -> None:
        (self.root / key).unlink(missing_ok=True)
        logger.info("image removed key=%s", key)
