# backend/app/core/security.py

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Request, Response

from app.core.config_loader import settings
from app.models.user_models import AuthTokens


ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

ACCESS_TOKEN_MAX_AGE = 60 * 60              # 1 hour
REFRESH_TOKEN_MAX_AGE = 7 * 24 * 60 * 60    # 7 days

# the auth service puts the subject in `user_id`, plain JWTs use `sub`
SUBJECT_CLAIMS = ("user_id", "sub")


class TokenDecodeError(Exception):
    pass


@dataclass
class TokenClaims:
    subject: str
    expiry: Optional[datetime]
    claims: Dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# JWT DECODE (NO SIGNATURE VERIFICATION)
# ---------------------------------------------------------------------------
def _expiry_from_claims(claims: Dict[str, Any]) -> Optional[datetime]:
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def _unverified_claims(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        raise TokenDecodeError("Unable to decode access token") from e


def decode_token(token: str) -> TokenClaims:
    """
    Read the payload of a JWT without checking its signature.

    Tokens are issued by the external auth service and we hold no key
    material for them, so anyone able to build a well-formed payload is
    treated as its subject. Identity for chat routes is resolved again
    through the profile endpoint.
    """
    claims = _unverified_claims(token)

    subject = next((claims[c] for c in SUBJECT_CLAIMS if claims.get(c) not in (None, "")), None)
    if subject is None:
        raise TokenDecodeError("Token has no subject")

    return TokenClaims(subject=str(subject), expiry=_expiry_from_claims(claims), claims=claims)


def get_token_expiration(token: str) -> Optional[datetime]:
    try:
        return _expiry_from_claims(_unverified_claims(token))
    except TokenDecodeError:
        return None


def is_token_expired(token: str) -> bool:
    expiration = get_token_expiration(token)
    if expiration is None:
        return True
    return expiration < datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# TOKEN EXTRACTION
# ---------------------------------------------------------------------------
def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def extract_access_token(request: Request) -> Optional[str]:
    cookie_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie_token:
        return cookie_token
    return extract_token_from_header(request.headers.get("authorization"))


# ---------------------------------------------------------------------------
# COOKIES
# ---------------------------------------------------------------------------
def _cookie_options() -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
        "path": "/",
    }


def set_auth_cookies(response: Response, tokens: AuthTokens) -> None:
    options = _cookie_options()
    response.set_cookie(
        ACCESS_TOKEN_COOKIE, tokens.access_token, max_age=ACCESS_TOKEN_MAX_AGE, **options
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE, tokens.refresh_token, max_age=REFRESH_TOKEN_MAX_AGE, **options
    )


def clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie(ACCESS_TOKEN_COOKIE, **options)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, **options)
