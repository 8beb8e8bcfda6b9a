from fastapi import Depends, Header
from typing import Optional
from pydantic import BaseModel

from app.core.errors import UnauthenticatedError
from app.utils.ids import try_parse_id


class Viewer(BaseModel):
    """Identity of the caller. `user_id` is None for anonymous requests."""
    user_id: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None


ANONYMOUS = Viewer()


async def resolve_viewer(
    x_user_id: str | None = Header(default=None),
) -> Viewer:
    """
    Dependency to resolve the caller identity from request headers.
    - The upstream auth layer forwards the verified user id in 'X-User-ID'.
    - Missing or malformed values fail closed to an anonymous viewer.
    """
    user_id = try_parse_id(x_user_id)
    if user_id is None:
        return ANONYMOUS
    return Viewer(user_id=user_id)


async def require_viewer(viewer: Viewer = Depends(resolve_viewer)) -> Viewer:
    if not viewer.authenticated:
        raise UnauthenticatedError()
    return viewer
