import hashlib
import secrets
import string
import uuid
from datetime import timedelta

import jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.exceptions import InvalidTokenException, TokenExpiredException
from app.utils.clock import utcnow

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEVICE_ID_LENGTH = 20
DEVICE_ID_ALPHABET = string.ascii_letters + string.digits


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash. The digest comparison is constant-time.
    """
    return pwd_context.verify(plain_password, hashed_password)

def generate_device_id() -> str:
    """Mint a 20-character alphanumeric device id."""
    return "".join(secrets.choice(DEVICE_ID_ALPHABET) for _ in range(DEVICE_ID_LENGTH))

def is_valid_device_id(device_id: str) -> bool:
    return len(device_id) == DEVICE_ID_LENGTH and all(c in DEVICE_ID_ALPHABET for c in device_id)

def create_access_token(user_id: int, device_id: str, expires_delta: timedelta = None) -> tuple[str, str]:
    """
    Create a JWT access token bound to a (user_id, device_id) pair.

    Args:
        user_id: ID of the authenticated user
        device_id: Device the token is issued for
        expires_delta: Optional expiration time delta

    Returns:
        Tuple of (encoded JWT, jti). The jti is stored server-side so that a
        newer login on the same device invalidates this token.
    """
    jti = uuid.uuid4().hex
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expiry_minutes))
    to_encode = {
        "user_id": user_id,
        "device_id": device_id,
        "jti": jti,
        "exp": expire,
    }
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return encoded_jwt, jti

def verify_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Raises:
        TokenExpiredException: If the token signature is valid but expired
        InvalidTokenException: If the token cannot be decoded
    """
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise TokenExpiredException()
    except jwt.PyJWTError:
        raise InvalidTokenException(detail="Invalid authentication credentials")

def create_refresh_token() -> str:
    return secrets.token_urlsafe(48)

def hash_refresh_token(raw_token: str) -> str:
    # Only the digest is persisted.
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()
