"""Auth API — registration, login, logout, profile.

Routes:
- POST /auth/register → create account, set token cookie
- POST /auth/login → email/password → token cookie (+ token in body)
- POST /auth/logout → clear the cookie
- GET /auth/me → current user
- PUT /auth/profile → change display name

The token is returned in the body too, because the WebSocket handshake
needs it and the cookie is HTTP-only.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.auth.dependencies import get_current_user
from taskflow.config import settings
from taskflow.db.engine import get_db
from taskflow.schemas.auth import (
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserEnvelope,
    UserRead,
    UserUpdated,
)
from taskflow.schemas.base import MessageResponse
from taskflow.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _auth_svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        max_age=settings.access_token_expire_minutes * 60,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    svc: AuthService = Depends(_auth_svc),
):
    """Create a new user account and sign it in."""
    user, token = await svc.register(
        email=body.email, name=body.name, password=body.password
    )
    _set_token_cookie(response, token)
    return AuthResponse(message="User registered successfully", user=user, token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    svc: AuthService = Depends(_auth_svc),
):
    user, token = await svc.login(email=body.email, password=body.password)
    _set_token_cookie(response, token)
    return AuthResponse(message="Login successful", user=user, token=token)


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    response.delete_cookie(
        key=settings.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserEnvelope)
async def get_me(
    current: UserRead = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    """Get the current authenticated user's info."""
    user = await svc.get_current_user(current.id)
    return UserEnvelope(user=user)


@router.put("/profile", response_model=UserUpdated)
async def update_profile(
    body: ProfileUpdate,
    current: UserRead = Depends(get_current_user),
    svc: AuthService = Depends(_auth_svc),
):
    user = await svc.update_profile(current.id, name=body.name)
    return UserUpdated(message="Profile updated successfully", user=user)
