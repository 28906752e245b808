# backend/app/api/routes_auth.py

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.api.dependencies import authenticate
from app.core.config_loader import settings
from app.core.errors import AppError, Unauthenticated
from app.core.logger import logger
from app.core.security import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    clear_auth_cookies,
    extract_access_token,
    extract_token_from_header,
    set_auth_cookies,
)
from app.models.response_models import error_response, success_response
from app.models.user_models import LoginIn, RefreshIn
from app.services.auth_service import AuthServiceClient, get_auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


# --------------------------
# LOGIN
# --------------------------
@router.post("/login")
def login(
    data: LoginIn,
    response: Response,
    auth_service: AuthServiceClient = Depends(get_auth_service),
):
    tokens = auth_service.login(data.email, data.password)
    user = auth_service.fetch_profile(tokens.access_token)

    set_auth_cookies(response, tokens)
    logger.info("User %s logged in", user.user_uuid)

    return success_response(
        "Login successful",
        {"user": user.to_response(), "tokens": tokens.model_dump()},
    )


# --------------------------
# LOGOUT
# --------------------------
@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    auth_service: AuthServiceClient = Depends(get_auth_service),
):
    header_token = extract_token_from_header(request.headers.get("authorization"))
    access_token = request.cookies.get(ACCESS_TOKEN_COOKIE) or header_token
    refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE) or header_token

    if refresh_token:
        auth_service.logout(access_token, refresh_token)

    clear_auth_cookies(response)
    return success_response("Logout successful")


# --------------------------
# REFRESH
# --------------------------
def _refresh_failure(message: str, code: str) -> JSONResponse:
    body = error_response(message)
    body["error"] = code
    failure = JSONResponse(status_code=401, content=body)
    clear_auth_cookies(failure)
    return failure


@router.post("/refresh", dependencies=[Depends(authenticate)])
def refresh(
    request: Request,
    response: Response,
    data: Optional[RefreshIn] = Body(None),
    auth_service: AuthServiceClient = Depends(get_auth_service),
):
    refresh_token = (
        request.cookies.get(REFRESH_TOKEN_COOKIE)
        or (data.refresh_token if data else None)
        or extract_token_from_header(request.headers.get("authorization"))
    )
    if not refresh_token:
        return _refresh_failure("Refresh token not provided", "MISSING_REFRESH_TOKEN")

    tokens = auth_service.refresh(refresh_token)
    if tokens is None:
        return _refresh_failure("Invalid or expired refresh token", "INVALID_REFRESH_TOKEN")

    set_auth_cookies(response, tokens)
    return success_response("Tokens refreshed successfully", tokens.model_dump())


# --------------------------
# ME
# --------------------------
@router.get("/me", dependencies=[Depends(authenticate)])
def me(request: Request, auth_service: AuthServiceClient = Depends(get_auth_service)):
    try:
        user = auth_service.fetch_profile(
            extract_access_token(request), timeout=settings.auth_check_timeout_seconds
        )
    except AppError as e:
        logger.info("Auth check failed: %s", e.message)
        raise Unauthenticated("Not authenticated")

    return success_response("User is authenticated", {"user": user.to_response()})


# --------------------------
# PROFILE
# --------------------------
@router.get("/profile", dependencies=[Depends(authenticate)])
def profile(request: Request, auth_service: AuthServiceClient = Depends(get_auth_service)):
    user = auth_service.fetch_profile(extract_access_token(request))
    return success_response("Profile retrieved successfully", {"user": user.to_response()})
