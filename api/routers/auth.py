from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from api.models.session_models import LoginRequest, LoginResponse, UserResponse
from api.dependencies.auth import get_db, get_current_user, get_bearer_token
from clients.orcid_client import OrcidAuthError, OrcidConfigurationError
from database.models.auth_models import User, isoformat
from services.orcid_auth_service import login_with_orcid, refresh_orcid_tokens, InvalidAuthorizationCode
from services.token_service import resolve_token, revoke_token, InvalidTokenError
import logging
import os

IS_DEVELOPMENT = os.getenv("APP_ENV", "local") == "local"

# Configure logger
logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/api/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Exchanges an ORCID authorization code for a user profile and an API token.
    """
    logger.info("🔐 ORCID Login initiated")

    try:
        return login_with_orcid(db, payload.code)

    except InvalidAuthorizationCode as e:
        return _error(400, str(e))

    except OrcidAuthError as e:
        return _error(400, e.message)

    except OrcidConfigurationError as e:
        logger.error(f"❌ Login unavailable: {e}")
        return _error(500, f"Authentication failed: {e}" if IS_DEVELOPMENT else "Authentication failed")

    except Exception as e:
        logger.error(f"❌ Login error: {e}", exc_info=True)
        return _error(500, f"Authentication failed: {e}" if IS_DEVELOPMENT else "Authentication failed")


@router.post("/api/auth/logout")
def logout(request: Request, db: Session = Depends(get_db)):
    """
    Revokes only the presented token. Always reports success: the token may already be invalid.
    """
    logger.info("🚪 Logout request received")
    token = get_bearer_token(request)
    try:
        if not token:
            raise InvalidTokenError("No token presented")
        user, token_row = resolve_token(db, token)
        revoke_token(db, token_row.id)
        logger.info(f"✅ User logged out - ORCID: {user.orcid}")
        return {"success": True, "message": "Logged out successfully"}
    except Exception as e:
        logger.warning(f"Logout could not revoke token: {e}")
        return {"success": True, "message": "Logged out"}


@router.get("/api/auth/check")
def check(request: Request, db: Session = Depends(get_db)):
    token = get_bearer_token(request)
    try:
        if not token:
            raise InvalidTokenError("No token presented")
        user, _ = resolve_token(db, token)
    except InvalidTokenError:
        return JSONResponse(status_code=401, content={
            "authenticated": False,
            "tokenValid": False,
            "message": "Invalid or expired token",
        })

    return {"authenticated": True, "user": user.serialize(), "tokenValid": True}


@router.get("/api/auth/me", response_model=UserResponse)
def read_users_me(current_user: User = Depends(get_current_user)):
    return current_user.serialize()


@router.post("/api/auth/refresh-orcid-token")
def refresh_orcid_token(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Renews the stored ORCID tokens with the ORCID refresh token.
    """
    logger.info("🔄 Token refresh requested")
    try:
        user = refresh_orcid_tokens(db, current_user)
    except OrcidAuthError as e:
        return _error(400, e.message)
    except Exception as e:
        logger.error(f"❌ Token refresh error: {e}", exc_info=True)
        return _error(500, "Failed to refresh token")

    return {
        "success": True,
        "message": "Token refreshed successfully",
        "expiresAt": isoformat(user.token_expires_at),
    }
