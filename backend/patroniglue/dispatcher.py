"""Map status names to backend probes and probe results to HTTP outcomes."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol

from fastapi import status

from patroniglue.backend import PRIMARY, READ_ONLY, READ_WRITE, REPLICA, STATUS_KEYS, TransportError
from patroniglue.cache import CacheWriteError
from patroniglue.models import DispatchResult, Outcome

logger = logging.getLogger("patroniglue.dispatcher")


class StatusBackend(Protocol):
    async def is_primary(self) -> bool: ...

    async def is_read_write(self) -> bool: ...

    async def is_replica(self) -> bool: ...

    async def is_read_only(self) -> bool: ...


_PROBES: dict[str, Callable[[StatusBackend], Awaitable[bool]]] = {
    PRIMARY: lambda backend: backend.is_primary(),
    READ_WRITE: lambda backend: backend.is_read_write(),
    REPLICA: lambda backend: backend.is_replica(),
    READ_ONLY: lambda backend: backend.is_read_only(),
}


async def dispatch(backend: StatusBackend, name: str) -> DispatchResult:
    """Probe one status and build the response outcome.

    An error is reported with the same 503 as a clean ``false``; the body
    additionally carries the error message.
    """
    if name not in STATUS_KEYS:
        raise ValueError(f"unknown status name: {name!r}")

    try:
        value = await _PROBES[name](backend)
    except (TransportError, CacheWriteError) as exc:
        logger.warning("Probe %s failed (%s)", name, exc.__class__.__name__)
        message = str(exc)
        return DispatchResult(
            name=name,
            outcome=Outcome.ERROR,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            body={name: False, "error": message},
            error=message,
        )

    if value:
        return DispatchResult(
            name=name,
            outcome=Outcome.AVAILABLE,
            status_code=status.HTTP_200_OK,
            body={name: True},
        )
    return DispatchResult(
        name=name,
        outcome=Outcome.UNAVAILABLE,
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        body={name: False},
    )
