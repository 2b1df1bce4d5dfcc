"""
Shared request dependencies.

Authentication is handled upstream; the acting user's id arrives in the
``X-User-Id`` header. The clock is a dependency so tests can pin "now".
"""
from typing import Optional

from fastapi import Header, HTTPException, status

from workforce.core.clock import Clock, SystemClock
from workforce.core.config import settings

_system_clock = SystemClock()


def get_clock() -> Clock:
    return _system_clock


def get_actor_id(x_user_id: Optional[int] = Header(default=None, alias=settings.actor_header)) -> int:
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id


__all__ = ["get_clock", "get_actor_id"]
