# backend/app/api/dependencies.py

from fastapi import Depends, Request

from app.core.errors import AppError, Unauthenticated
from app.core.logger import logger
from app.core.security import TokenClaims, TokenDecodeError, decode_token, extract_access_token
from app.db.conversation_store import ConversationStore
from app.services.auth_service import AuthServiceClient, get_auth_service


# --------------------------------------------------------
# Gate 1 + 2: token present and decodable
# --------------------------------------------------------
def authenticate(request: Request) -> TokenClaims:
    token = extract_access_token(request)
    if not token:
        raise Unauthenticated("Access token not provided")

    try:
        claims = decode_token(token)
    except TokenDecodeError as e:
        logger.debug("Rejected access token on %s: %s", request.url.path, e)
        raise Unauthenticated("Invalid or expired token")

    return claims


# --------------------------------------------------------
# Gate 3: resolve the caller through the auth service
# --------------------------------------------------------
def get_current_user_id(
    request: Request,
    claims: TokenClaims = Depends(authenticate),
    auth_service: AuthServiceClient = Depends(get_auth_service),
) -> str:
    """
    The profile endpoint is the authority on who the caller is. The decoded
    token subject is not compared with it.
    """
    try:
        user = auth_service.fetch_profile(extract_access_token(request))
    except AppError as e:
        logger.info("Identity resolution failed (status=%s): %s", e.status_code, e.message)
        raise

    return user.user_uuid


# --------------------------------------------------------
# Store bound to the process-wide Mongo connection
# --------------------------------------------------------
def get_conversation_store(request: Request) -> ConversationStore:
    return ConversationStore(request.app.state.mongo.get_database())
