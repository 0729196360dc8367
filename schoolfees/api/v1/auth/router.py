from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi import status as http_status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolfees.auth.dependencies import get_optional_principal
from schoolfees.auth.schemas import AuthResponse, LoginRequest, Principal, RegisterRequest, UserInfo
from schoolfees.auth.services import login_user, register_user
from schoolfees.core.config import settings
from schoolfees.core.exceptions import ServiceError
from schoolfees.db.session import get_db

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=AuthResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    try:
        result = await login_user(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    response.set_cookie(
        key=settings.auth_cookie_name,
        value=result.token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    return result


@router.post("/logout")
async def logout(response: Response) -> dict:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"success": True}


@router.get("/me", response_model=AuthResponse)
async def me(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> AuthResponse:
    if principal is None:
        raise HTTPException(status_code=http_status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return AuthResponse(success=True, user=UserInfo(**principal.model_dump()))


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=http_status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    try:
        return await register_user(db, payload)
    except ServiceError as e:
        if e.status_code == http_status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise HTTPException(status_code=e.status_code, detail="Internal server error")
        raise HTTPException(status_code=e.status_code, detail=e.message)
