import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from jose import jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

PURPOSE_ACCESS = "access"
PURPOSE_PASSWORD_RESET = "password_reset"

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def create_jwt(payload: dict, secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    data = payload.copy()
    data.update({"iat": int(now.timestamp()), "exp": int((now + expires_delta).timestamp())})
    return jwt.encode(data, secret, algorithm="HS256")

def decode_jwt(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=["HS256"])

def create_access_token(*, user_id: str, email: str, firm_name: str) -> str:
    return create_jwt(
        {"sub": user_id, "email": email, "firm_name": firm_name, "purpose": PURPOSE_ACCESS},
        settings.JWT_SECRET,
        timedelta(minutes=settings.JWT_TTL_MINUTES),
    )

def password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]

def create_reset_token(*, email: str, password_hash: str) -> str:
    # Bound to the current hash, so the token stops working once the password changes.
    return create_jwt(
        {"sub": email, "purpose": PURPOSE_PASSWORD_RESET, "pwd": password_fingerprint(password_hash)},
        settings.JWT_SECRET,
        timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
    )

def reset_token_matches(claims: dict, password_hash: str) -> bool:
    return hmac.compare_digest(str(claims.get("pwd") or ""), password_fingerprint(password_hash))
