from dataclasses import dataclass, replace

from fastapi import Request


@dataclass(frozen=True)
class RequestContext:
    """Who is calling, as far as the request has been resolved so far."""

    user_id: str | None
    role: str | None
    location_id: str | None
    trace_id: str

    def with_location(self, location_id: str | None) -> "RequestContext":
        return replace(self, location_id=location_id)


def build_request_context(
    *,
    user_id: str | None,
    role: str | None,
    location_id: str | None,
    trace_id: str,
) -> RequestContext:
    return RequestContext(user_id=user_id, role=role, location_id=location_id, trace_id=trace_id)


def get_request_context(request: Request) -> RequestContext:
    state = request.state
    context = getattr(state, "context", None)
    if isinstance(context, RequestContext):
        return context
    return build_request_context(
        user_id=getattr(state, "user_id", None),
        role=getattr(state, "role", None),
        location_id=getattr(state, "location_id", None),
        trace_id=getattr(state, "trace_id", ""),
    )
