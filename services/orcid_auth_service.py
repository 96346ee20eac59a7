# File: services/orcid_auth_service.py
from datetime import datetime, timedelta
from typing import Dict, Optional
import logging
import re

from sqlalchemy.orm import Session

from clients.orcid_client import (
    exchange_code_for_tokens,
    fetch_record,
    extract_profile,
    refresh_tokens,
    get_orcid_settings,
    OrcidAuthError,
)
from database.models.auth_models import User, utcnow
from services.token_service import create_access_token

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class InvalidAuthorizationCode(ValueError):
    pass


def validate_authorization_code(code) -> str:
    if not code or not isinstance(code, str):
        raise InvalidAuthorizationCode("Authorization code is required")
    if len(code) < 6 or len(code) > 100 or not CODE_PATTERN.match(code):
        raise InvalidAuthorizationCode("Invalid authorization code format")
    return code


def _expiry_from(token_data: Dict) -> Optional[datetime]:
    expires_in = token_data.get("expires_in")
    if not expires_in:
        return None
    return utcnow() + timedelta(seconds=int(expires_in))


def upsert_user(db: Session, orcid: str, profile: Dict, token_data: Dict) -> User:
    user = db.query(User).filter(User.orcid == orcid).first()

    if user:
        logger.info("   Updating existing user")
        user.name = profile["name"]
        user.email = profile["email"]
        user.institution = profile["institution"]
    else:
        logger.info("   Creating new user")
        user = User(
            orcid=orcid,
            name=profile["name"],
            email=profile["email"],
            institution=profile["institution"],
        )
        db.add(user)

    user.access_token = token_data.get("access_token")
    user.refresh_token = token_data.get("refresh_token") or None
    user.token_expires_at = _expiry_from(token_data)

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user


def login_with_orcid(db: Session, code: str) -> Dict:
    """
    code -> ORCID tokens -> ORCID record -> upserted user -> API token.
    Linear, no retries. Any OrcidAuthError carries a message safe for the caller.
    """
    code = validate_authorization_code(code)

    # Fail before touching the network when the app is misconfigured
    get_orcid_settings()

    logger.info("📤 Exchanging authorization code for tokens...")
    token_data = exchange_code_for_tokens(code)

    orcid = token_data.get("orcid")
    access_token = token_data.get("access_token")
    if not orcid or not access_token:
        raise OrcidAuthError("Failed to exchange code for tokens")

    logger.info("👤 Fetching ORCID profile...")
    record = fetch_record(orcid, access_token)
    profile = extract_profile(record)

    logger.info("💾 Saving user to database...")
    user = upsert_user(db, orcid, profile, token_data)

    logger.info("🎫 Creating API access token...")
    token = create_access_token(db, user)

    logger.info(f"✅ Login successful - User ID: {user.id}")
    return {"user": user.serialize(), "token": token}


def refresh_orcid_tokens(db: Session, user: User) -> User:
    if not user.refresh_token:
        raise OrcidAuthError("No refresh token available")

    new_tokens = refresh_tokens(user.refresh_token)

    user.access_token = new_tokens.get("access_token")
    user.refresh_token = new_tokens.get("refresh_token") or user.refresh_token
    user.token_expires_at = _expiry_from(new_tokens)
    db.commit()
    db.refresh(user)

    logger.info(f"✅ ORCID token refreshed for user {user.id}")
    return user
