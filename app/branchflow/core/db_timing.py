from __future__ import annotations

from contextvars import ContextVar, Token

# Per-request accumulator. The list is shared by reference so queries issued
# from the task running the endpoint are visible to the middleware.
_request_db_ms: ContextVar[list[float] | None] = ContextVar("request_db_ms", default=None)


def begin_db_timing() -> Token:
    return _request_db_ms.set([0.0])


def end_db_timing(token: Token) -> None:
    _request_db_ms.reset(token)


def record_query_time(elapsed_ms: float) -> None:
    bucket = _request_db_ms.get()
    if bucket is not None:
        bucket[0] += elapsed_ms


def current_db_time_ms() -> float | None:
    bucket = _request_db_ms.get()
    return bucket[0] if bucket is not None else None
