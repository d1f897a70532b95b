"""
FastAPI routes bridging the UI layer to the auth core.

Prefix: /auth

Every endpoint returns the AuthResult JSON shape; the HTTP status mirrors
the result's error code so clients can branch on either.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import JSONResponse

from fintrack.auth.service import AuthService
from fintrack.models.session import AuthResult


router = APIRouter(prefix="/auth", tags=["auth"])

ERROR_STATUS = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "duplicate_email": status.HTTP_409_CONFLICT,
    "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
    "no_session": status.HTTP_401_UNAUTHORIZED,
    "storage_error": status.HTTP_503_SERVICE_UNAVAILABLE,
    "crypto_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _respond(result: AuthResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    if result.success:
        code = success_status
    else:
        code = ERROR_STATUS.get(result.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    phone: Optional[str] = Form(None),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """
    Register a new user and sign them in.

    Request (form-encoded):
        name, email, password, phone (optional)
    """
    result = await auth.register(name=name, email=email, password=password, phone=phone)
    return _respond(result, success_status=status.HTTP_201_CREATED)


@router.post("/login")
async def login(
    email: str = Form(""),
    password: str = Form(""),
    auth: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    result = await auth.login(email=email, password=password)
    return _respond(result)


@router.post("/logout")
async def logout(auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return _respond(await auth.logout())


@router.post("/restore")
async def restore(auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Reload the persisted session, e.g. after the app restarts."""
    return _respond(await auth.restore_session())


@router.get("/session")
async def session(auth: AuthService = Depends(get_auth_service)) -> JSONResponse:
    return _respond(await auth.get_current_session())
