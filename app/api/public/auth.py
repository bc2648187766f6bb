from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import (
    PURPOSE_PASSWORD_RESET,
    create_access_token,
    create_reset_token,
    decode_jwt,
    hash_password,
    reset_token_matches,
    verify_password,
)
from app.db.session import get_db
from app.models.user import User
from app.schemas.auth import ForgotIn, LoginIn, RegisterIn, ResetIn
from app.services.email_service import EmailDeliveryError, send_email_message

router = APIRouter()
_LOG = logging.getLogger("app.auth")


def _normalize_email(raw: str | None) -> str:
    return str(raw or "").strip().lower()


def _user_payload(user: User) -> dict:
    return {"firmName": user.firm_name, "fullName": user.full_name, "email": user.email}


def _active_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email, User.is_active.is_(True)).first()


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    firm_name = str(payload.firm_name or "").strip()
    full_name = str(payload.full_name or "").strip()
    if not firm_name or not full_name or not email or not payload.password:
        raise HTTPException(status_code=400, detail="All fields required")
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(firm_name=firm_name, full_name=full_name, email=email, password_hash=hash_password(payload.password))
    db.add(user); db.commit(); db.refresh(user)
    _LOG.info("New firm registered firm=%s user=%s", firm_name, email)
    return {"success": True, "message": "Account created successfully", "user": _user_payload(user)}


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password required")
    user = _active_user_by_email(db, email)
    if user is None or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(user_id=str(user.id), email=user.email, firm_name=user.firm_name)
    return {
        "success": True,
        "message": "Login successful",
        "access_token": token,
        "token_type": "Bearer",
        "user": _user_payload(user),
    }


@router.post("/forgot")
def forgot_password(payload: ForgotIn, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    user = _active_user_by_email(db, email) if email else None
    if user is None:
        raise HTTPException(status_code=404, detail="Email not found in database")

    token = create_reset_token(email=user.email, password_hash=user.password_hash)
    body = (
        f"Hello {user.full_name},\n\n"
        f"Use this code to reset your password within {settings.RESET_TOKEN_TTL_MINUTES} minutes:\n\n{token}\n"
    )
    try:
        delivery = send_email_message(email=user.email, subject="Password reset", body=body)
    except EmailDeliveryError as exc:
        _LOG.error("Password reset email failed for %s: %s", user.email, exc)
        raise HTTPException(status_code=500, detail="Error sending reset email")

    response = {"success": True, "message": "Reset link sent to your email"}
    if delivery.get("mocked"):
        response["debug_token"] = token
    return response


@router.post("/reset")
def reset_password(payload: ResetIn, db: Session = Depends(get_db)):
    email = _normalize_email(payload.email)
    if not email or not payload.password:
        raise HTTPException(status_code=400, detail="Email and password required")
    try:
        claims = decode_jwt(str(payload.token or ""), settings.JWT_SECRET)
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    if claims.get("purpose") != PURPOSE_PASSWORD_RESET or claims.get("sub") != email:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user = _active_user_by_email(db, email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not reset_token_matches(claims, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    user.password_hash = hash_password(payload.password)
    db.add(user); db.commit()
    _LOG.info("Password updated for %s", email)
    return {"success": True, "message": "Password updated successfully"}
