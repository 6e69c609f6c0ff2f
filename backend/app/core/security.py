from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
from fastapi import HTTPException, status
import hashlib
import hmac
import secrets

from app.core.config import settings

BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes
    return password.encode('utf-8')[:BCRYPT_MAX_BYTES]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode('utf-8')


def _encode(data: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    claims = dict(data)
    claims.update({"exp": datetime.utcnow() + lifetime, "type": token_type})
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Short-lived token sent as `Authorization: Bearer`"""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, "access", lifetime)


def create_refresh_token(data: Dict[str, Any]) -> str:
    """Long-lived token accepted only by /auth/refresh"""
    return _encode(data, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> Dict[str, Any]:
    """Verify signature and expiry; 401 on any failure"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def generate_otp() -> str:
    """OTP_LENGTH-digit numeric code, never starting with 0"""
    low = 10 ** (settings.OTP_LENGTH - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_otp(otp: str) -> str:
    """Only the digest is persisted"""
    return hashlib.sha256(otp.encode()).hexdigest()


def verify_otp(otp: str, otp_hash: Optional[str]) -> bool:
    if not otp or not otp_hash:
        return False
    return hmac.compare_digest(hash_otp(otp.strip()), otp_hash)
