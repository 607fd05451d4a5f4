"""
Caller identity.

Token validation happens upstream; the gateway forwards the resolved user
in ``X-User-*`` headers. ``identity_middleware`` turns those headers into a
``LoggedinUser`` stored on ``request.state`` for the lifetime of that one
request, and routes pass it explicitly into every service call.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

USER_ID_HEADER = "x-user-id"
USER_FULLNAME_HEADER = "x-user-fullname"
USER_IMG_HEADER = "x-user-imgurl"
USER_ADMIN_HEADER = "x-user-admin"


class LoggedinUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    fullname: str = ""
    img_url: Optional[str] = Field(None, alias="imgUrl")
    is_admin: bool = Field(False, alias="isAdmin")

    def snapshot(self) -> dict:
        """Identity as embedded into documents (host, guest, review author)."""
        return {"_id": self.id, "fullname": self.fullname, "imgUrl": self.img_url}


def resolve_identity(request: Request) -> Optional[LoggedinUser]:
    user_id = request.headers.get(USER_ID_HEADER)
    if not user_id:
        return None
    return LoggedinUser(
        id=user_id,
        fullname=request.headers.get(USER_FULLNAME_HEADER, ""),
        img_url=request.headers.get(USER_IMG_HEADER),
        is_admin=request.headers.get(USER_ADMIN_HEADER, "").lower() in {"1", "true", "yes"},
    )


async def identity_middleware(request: Request, call_next):
    request.state.loggedin_user = resolve_identity(request)
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response


def get_loggedin_user(request: Request) -> Optional[LoggedinUser]:
    return getattr(request.state, "loggedin_user", None)


def require_auth(request: Request) -> LoggedinUser:
    loggedin_user = get_loggedin_user(request)
    if loggedin_user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return loggedin_user
