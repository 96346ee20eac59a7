# File: services/token_service.py
from datetime import timedelta
from typing import Tuple
import logging
import uuid

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from database.models.auth_models import AccessToken, User, utcnow
from utils.crypto import APP_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
SECRET_KEY = APP_KEY
ACCESS_TOKEN_EXPIRE_DAYS = 7


class InvalidTokenError(Exception):
    pass


def create_access_token(db: Session, user: User) -> str:
    """
    Mints an API token for the user. The JWT carries the token row id as jti,
    so a single token can be revoked without touching the user's other sessions.
    """
    token_id = str(uuid.uuid4())
    expires_at = utcnow() + timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS)

    db.add(AccessToken(id=token_id, user_id=user.id, expires_at=expires_at))
    db.commit()

    to_encode = {
        "sub": str(user.id),
        "orcid": user.orcid,
        "jti": token_id,
        "exp": expires_at,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def resolve_token(db: Session, token: str) -> Tuple[User, AccessToken]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise InvalidTokenError("Invalid or expired token")

    token_id = payload.get("jti")
    user_id = payload.get("sub")
    if not token_id or user_id is None:
        raise InvalidTokenError("Invalid or expired token")

    row = db.query(AccessToken).filter(AccessToken.id == token_id).first()
    if row is None or str(row.user_id) != str(user_id):
        raise InvalidTokenError("Token has been revoked")

    if row.expires_at < utcnow():
        raise InvalidTokenError("Invalid or expired token")

    user = db.query(User).filter(User.id == row.user_id).first()
    if user is None:
        raise InvalidTokenError("Invalid or expired token")

    row.last_used_at = utcnow()
    db.commit()
    return user, row


def revoke_token(db: Session, token_id: str) -> bool:
    deleted = db.query(AccessToken).filter(AccessToken.id == token_id).delete()
    db.commit()
    return deleted > 0
