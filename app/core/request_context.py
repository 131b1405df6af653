from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass, replace


@dataclass(frozen=True)
class RequestContext:
    """Identifiers attached to every log line emitted while serving a request."""

    request_id: str | None = None
    business_id: str | None = None
    user_id: str | None = None


_EMPTY = RequestContext()
_CURRENT: ContextVar[RequestContext] = ContextVar("catalog_request_context", default=_EMPTY)


def current_context() -> RequestContext:
    return _CURRENT.get()


def bind_request_context(**fields: str | None) -> Token:
    """Overlay the non-empty `fields` on the current context; returns the token for `reset_request_context`."""
    updates = {key: value for key, value in fields.items() if value is not None}
    return _CURRENT.set(replace(_CURRENT.get(), **updates))


def reset_request_context(token: Token | None = None) -> None:
    if token is None:
        _CURRENT.set(_EMPTY)
        return
    _CURRENT.reset(token)
