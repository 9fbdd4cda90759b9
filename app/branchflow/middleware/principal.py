from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.branchflow.core.context import build_request_context
from app.branchflow.core.security import decode_token


class PrincipalContextMiddleware(BaseHTTPMiddleware):
    """Expose the unverified caller identity to logging.

    Authorization is still enforced by the route dependencies; this only
    fills ``request.state`` so request logs carry who called.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        request.state.role = None
        request.state.location_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = decode_token(token)
            except JWTError:
                payload = {}
            request.state.user_id = payload.get("sub")
            request.state.role = payload.get("role")
            request.state.location_id = payload.get("location_id")

        request.state.context = build_request_context(
            user_id=request.state.user_id,
            role=request.state.role,
            location_id=request.state.location_id,
            trace_id=getattr(request.state, "trace_id", ""),
        )

        return await call_next(request)
