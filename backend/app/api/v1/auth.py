"""
Authentication API endpoints.

Handles registration, login, email confirmation, password reset and the
current user's profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_notifier, get_token_service
from app.core.security import SessionTokenService
from app.db.session import get_db
from app.models import User
from app.schemas.user import PublicProfile
from app.services import credentials, identity
from app.services.notifications import Notifier

router = APIRouter()


# ============== Pydantic Schemas ==============


class UserRegister(BaseModel):
    """Schema for user registration."""

    full_name: str
    email: str
    password: str
    role: str  # 'student' | 'alumni' | 'faculty' | 'admin'
    college_name: str


class RegisterResponse(BaseModel):
    message: str
    user: PublicProfile
    requires_approval: bool


class Token(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    token_type: str = "bearer"
    user: PublicProfile


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    degree: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[int] = None
    current_company: Optional[str] = None
    current_position: Optional[str] = None
    skills: Optional[list[str]] = None
    phone: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    is_mentor: Optional[bool] = None
    mentorship_topics: Optional[list[str]] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    password: str


class MessageResponse(BaseModel):
    message: str


# ============== API Endpoints ==============


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Register a new user.

    The college is looked up by the email's domain and created on the first
    registration from that domain. New accounts start unverified.
    """
    result = identity.register(
        db,
        full_name=user_data.full_name,
        email=user_data.email,
        password=user_data.password,
        role=user_data.role,
        college_name=user_data.college_name,
    )

    notifier.send_verification(result.identity.email, result.verification_token)

    return RegisterResponse(
        message="Registration successful. Waiting for admin approval.",
        user=result.identity,
        requires_approval=result.requires_approval,
    )


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    tokens: SessionTokenService = Depends(get_token_service),
):
    """
    Login and get a session token.

    Uses OAuth2 password flow. Send username (email) and password
    as form data.
    """
    result = credentials.login(db, tokens, form_data.username, form_data.password)
    return Token(access_token=result.session_token, user=result.identity)


@router.get("/me", response_model=PublicProfile)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user profile."""
    return identity.public_profile(current_user)


@router.patch("/me", response_model=PublicProfile)
def update_me(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return identity.update_profile(db, current_user, **update.model_dump(exclude_unset=True))


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: User = Depends(get_current_user)):
    # Session tokens are stateless; the client discards its copy
    return MessageResponse(message="Logout successful")


@router.post("/verify-email/{token}", response_model=PublicProfile)
def verify_email(token: str, db: Session = Depends(get_db)):
    return identity.confirm_email(db, token)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Start a password reset.

    Unlike login, this reveals whether the email is registered: reset is
    initiated by the account owner.
    """
    reset_token = credentials.begin_password_reset(db, request.email)
    notifier.send_password_reset(identity.normalize_email(request.email), reset_token)
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password/{token}", response_model=MessageResponse)
def reset_password(token: str, request: ResetPasswordRequest, db: Session = Depends(get_db)):
    credentials.complete_password_reset(db, token, request.password)
    return MessageResponse(message="Password reset successful")
