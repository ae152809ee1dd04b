from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..database import get_session
from ..errors import Conflict, Unauthorized
from ..logging import get_logger
from ..services.auth import (
    authenticate_user,
    create_session,
    create_user,
    delete_user_sessions,
    get_user_by_email,
    get_user_or_404,
)

logger = get_logger(__name__)

router = APIRouter()


class SignupRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    username: str = Field(min_length=1)


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LogoutRequest(BaseModel):
    user_id: int


@router.post("/user_signup", status_code=status.HTTP_201_CREATED)
async def user_signup(body: SignupRequest, db: Session = Depends(get_session)):
    """Register a new user."""
    if get_user_by_email(db, body.email):
        logger.warning("signup_email_taken")
        raise Conflict("User already exists with this email.")

    user = create_user(db, email=body.email, password=body.password, name=body.username)

    return {
        "message": "User registered successfully.",
        "id": user.id,
        "email": user.email,
        "username": user.name
    }


@router.post("/user_login")
async def user_login(body: LoginRequest, db: Session = Depends(get_session)):
    """Check credentials and open a session."""
    user = authenticate_user(db, body.email, body.password)

    if not user:
        logger.warning("login_failed")
        raise Unauthorized("Incorrect email or password.")

    session = create_session(db, user.id)
    logger.info("user_logged_in", user_id=user.id)

    return {
        "message": "User found successfully.",
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "session_token": session.session_token
    }


@router.post("/user_logout")
async def user_logout(body: LogoutRequest, db: Session = Depends(get_session)):
    get_user_or_404(db, body.user_id)
    removed = delete_user_sessions(db, body.user_id)
    logger.info("user_logged_out", user_id=body.user_id, sessions_removed=removed)

    return {"message": "User logged out successfully."}
