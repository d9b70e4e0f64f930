"""
Auth router - issues bearer tokens for username/password logins.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from forkcheck.database import get_db
from forkcheck.models import User
from forkcheck.schemas import LoginRequest, LoginResponse
from forkcheck.security import create_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Verify username and password and return the user with an access token.
    The same message is used for an unknown user and a wrong password.
    """
    user = db.query(User).filter(User.username == credentials.username.strip()).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.info(f"Failed login for '{credentials.username}'")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password."
        )

    return LoginResponse(
        id=user.id,
        username=user.username,
        role=user.role,
        access_token=create_access_token(user),
    )
