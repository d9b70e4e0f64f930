"""
Users router - signup, lookup and account removal.
RBAC: signup and lookup are public, deletion requires a supervisor.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from forkcheck.database import get_db
from forkcheck.models import User
from forkcheck.schemas import UserCreate, UserResponse
from forkcheck.security import AuthUser, get_auth_user, hash_password, require_supervisor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[UserResponse])
def find_users(
    username: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Look up users by exact username (used to check availability before signup).
    """
    if not username or not username.strip():
        raise HTTPException(status_code=400, detail="Username query parameter is required.")

    return db.query(User).filter(User.username == username.strip()).all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def signup(user: UserCreate, db: Session = Depends(get_db)):
    """
    Create an account.

    **Validations:**
    - Username must be unique
    - Password must meet the minimum length
    """
    existing = db.query(User).filter(User.username == user.username).first()
    if existing:
        raise HTTPException(status_code=409, detail="Username already exists.")

    db_user = User(
        username=user.username,
        password_hash=hash_password(user.password),
        role=user.role,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    logger.info(f"User '{db_user.username}' signed up as {db_user.role.value}")
    return db_user


@router.get("/me", response_model=UserResponse)
def read_current_user(auth_user: AuthUser = Depends(get_auth_user)):
    return UserResponse(id=auth_user.id, username=auth_user.username, role=auth_user.role)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    auth_user: AuthUser = Depends(require_supervisor())
):
    """
    Delete a user.

    **Warning:** the user's inspection reports and downtime logs are deleted too;
    PMS entries they serviced keep their record without the user link.
    """
    db_user = db.get(User, user_id)
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")

    db.delete(db_user)
    db.commit()
    logger.info(f"User {user_id} deleted by {auth_user.username}")
