# edustack/core/security.py - Authentication utilities (JWT, password hashing)
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Union
import secrets

import jwt
from passlib.context import CryptContext

from edustack.core.config import settings
from edustack.core.errors import AuthError

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
    bcrypt__ident="2b"
)


class SecurityError(Exception):
    """Raised when a token cannot be produced"""
    pass


class TokenManager:
    """Manages JWT token creation and validation"""

    RESERVED_CLAIMS = {"sub", "iat", "exp", "iss", "aud", "type", "jti"}

    def __init__(self):
        self.secret_key = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_token_expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(
        self,
        subject: Union[str, Any],
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a JWT access token.

        Args:
            subject: Token subject (the user ID)
            expires_delta: Custom expiration time
            additional_claims: Additional JWT claims

        Returns:
            Encoded JWT token string

        Raises:
            SecurityError: If a reserved claim is overridden or encoding fails
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        payload = {
            "sub": str(subject),
            "iat": now,
            "exp": expire,
            "iss": self.issuer,
            "aud": self.audience,
            "type": "access",
            "jti": secrets.token_hex(16),
        }

        if additional_claims:
            for claim in additional_claims:
                if claim in self.RESERVED_CLAIMS:
                    raise SecurityError(f"Cannot override reserved JWT claim: {claim}")
            payload.update(additional_claims)

        try:
            return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except jwt.PyJWTError as e:
            raise SecurityError(f"Failed to create access token: {e}")

    def decode_token(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        """
        Decode and validate a JWT token.

        Raises:
            AuthError: If token is invalid, expired or of the wrong type
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError:
            raise AuthError("Token has expired")
        except jwt.InvalidTokenError:
            raise AuthError("Invalid token provided")

        if payload.get("type") != expected_type:
            raise AuthError(f"Invalid token type. Expected {expected_type}")

        return payload


class PasswordManager:
    """Manages password hashing and verification"""

    @staticmethod
    def hash_password(password: str) -> str:
        if not password:
            raise SecurityError("Password cannot be empty")
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash; malformed hashes never match"""
        if not plain_password or not hashed_password:
            return False
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            return False


token_manager = TokenManager()
password_manager = PasswordManager()
