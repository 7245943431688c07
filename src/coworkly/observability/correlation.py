"""Request correlation ids carried in a ContextVar.

The HTTP middleware binds one per request; JsonFormatter reads it so every
log line emitted while handling the request carries the same id.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

CORRELATION_ID_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[str] = ContextVar("coworkly_correlation_id", default="")


def get_correlation_id() -> str:
    return _correlation_id.get()


@contextmanager
def correlation_scope(incoming: str | None = None) -> Iterator[str]:
    """Bind incoming (or a fresh UUID4) for the duration of the block."""
    cid = incoming or str(uuid.uuid4())
    token = _correlation_id.set(cid)
    try:
        yield cid
    finally:
        _correlation_id.reset(token)
