from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from database.db import SessionLocal
from database.models.auth_models import User, AccessToken
from services.token_service import resolve_token, InvalidTokenError


@dataclass
class AuthContext:
    """The authenticated caller and the token they presented."""
    user: User
    token: AccessToken


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        return token or None
    return None


async def get_auth_context(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = get_bearer_token(request)
    if not token:
        raise credentials_exception

    try:
        user, token_row = resolve_token(db, token)
    except InvalidTokenError:
        raise credentials_exception

    return AuthContext(user=user, token=token_row)


async def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    return context.user
