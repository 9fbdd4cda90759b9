from uuid import UUID

from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.branchflow.core.config import settings
from app.branchflow.core.context import build_request_context, get_request_context
from app.branchflow.core.error_catalog import AppError, ErrorCatalog
from app.branchflow.core.metrics import metrics
from app.branchflow.core.scope import normalize_role, resolve_acting_location
from app.branchflow.core.security import TokenData, decode_token, oauth2_scheme
from app.branchflow.db.session import get_db
from app.branchflow.repos.users import UserRepository
from app.branchflow.services.access_scope import TransferScope, build_transfer_scope


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(
    request: Request,
    token_data: TokenData = Depends(get_current_token_data),
    db=Depends(get_db),
):
    user_id = token_data.sub
    if not user_id:
        raise AppError(ErrorCatalog.INVALID_TOKEN)

    try:
        user_uuid = UUID(str(user_id))
    except ValueError as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc

    repo = UserRepository(db)
    user = repo.get_by_id(user_uuid)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    if not user.is_active:
        raise AppError(ErrorCatalog.USER_INACTIVE)

    # The directory row is authoritative over the token claims.
    request.state.context = build_request_context(
        user_id=str(user.id),
        role=user.role,
        location_id=str(user.location_id) if user.location_id else None,
        trace_id=getattr(request.state, "trace_id", ""),
    )
    return user


def require_roles(*roles: str):
    allowed = {normalize_role(role) for role in roles}

    def dependency(user=Depends(get_current_user)):
        if normalize_role(user.role) not in allowed:
            metrics.increment_rbac_denied()
            raise AppError(ErrorCatalog.PERMISSION_DENIED, details={"role": user.role})
        return user

    return dependency


def get_acting_location(request: Request, user=Depends(get_current_user), db=Depends(get_db)):
    location = resolve_acting_location(
        db,
        user,
        branch_header=request.headers.get(settings.BRANCH_HEADER),
        device_header=request.headers.get(settings.DEVICE_HEADER),
    )
    request.state.context = get_request_context(request).with_location(
        str(location.id) if location is not None else None
    )
    return location


def get_transfer_scope(user=Depends(get_current_user), acting_location=Depends(get_acting_location)) -> TransferScope:
    return build_transfer_scope(user, acting_location)


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "require_roles",
    "get_acting_location",
    "get_transfer_scope",
]
