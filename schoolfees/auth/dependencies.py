from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from schoolfees.auth.schemas import Principal
from schoolfees.auth.security import decode_access_token
from schoolfees.auth.services import get_active_user
from schoolfees.core.config import settings
from schoolfees.db.session import get_db


# Bearer header is optional; browsers send the HTTP-only cookie instead
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def _token_from_request(request: Request, bearer: Optional[str]) -> Optional[str]:
    return bearer or request.cookies.get(settings.auth_cookie_name)


async def get_optional_principal(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    token = _token_from_request(request, bearer)
    if not token:
        return None
    claims = decode_access_token(token)
    if not claims or not claims.get("sub"):
        return None
    try:
        user_id = UUID(claims["sub"])
    except ValueError:
        return None
    user = await get_active_user(db, user_id)
    if not user:
        return None
    return Principal(
        id=user.id,
        email=user.email,
        name=user.name,
        school_name=user.school_name,
        role=user.role,
    )


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """Resolve the signed-in account; 401 when there is none."""
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_roles(*roles: str):
    """
    Dependency factory for the role tag check.

    Example:
        Depends(require_roles("admin", "director"))
    """

    async def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _checker
