from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_min_length, require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ValidationError
from .model import TokenClaims, User
from .repository import UserRepository

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


class TokenService:
    """Issue and verify signed bearer tokens."""

    def __init__(self, secret: str, *, ttl_hours: int = 24):
        self._secret = secret
        self._ttl = timedelta(hours=int(ttl_hours))

    def issue(self, user: User, *, now: Optional[datetime] = None) -> str:
        now = now or datetime.utcnow()
        payload = {
            "userId": user.user_id,
            "email": user.email,
            "role": user.role.value,
            "name": user.name,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: Optional[str]) -> TokenClaims:
        if not token:
            raise AuthenticationError("Access token required")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
            return TokenClaims(
                user_id=str(payload["userId"]),
                email=payload.get("email", ""),
                role=Role(payload["role"]),
                name=payload.get("name", ""),
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except (jwt.InvalidTokenError, KeyError, ValueError):
            raise AuthenticationError("Invalid token")


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


class AuthService:
    """Use case: authenticate staff (login) and resolve the current user."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def login(self, email: str, password: str, role: str, *, now: Optional[datetime] = None) -> LoginResult:
        if not email or not password or not role:
            raise ValidationError("Email, password, and role are required")

        user = self._users.get_by_email(str(email))
        if not user or user.role.value != role:
            raise AuthenticationError("Invalid credentials or role")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated. Please contact administrator.")

        try:
            ok = check_password_hash(user.password_hash, password)
        except (ValueError, TypeError):
            # placeholder or corrupted hashes
            ok = False
        if not ok:
            raise AuthenticationError("Invalid credentials")

        now = now or datetime.utcnow()
        token = self._tokens.issue(user, now=now)
        self._users.touch_last_login(user.user_id, now)
        logger.info("login ok user=%s role=%s", user.email, user.role.value)
        return LoginResult(token=token, user=user)

    def current_user(self, claims: TokenClaims) -> User:
        user = self._users.get_by_id(claims.user_id)
        if not user:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise AuthenticationError("Account deactivated")
        return user


class UserService:
    """Use case: manage staff accounts (seeding, admin tooling)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def create_account(self, *, name: str, email: str, password: str, role: Role) -> str:
        name = require_non_empty(name, "Name")
        email = require_non_empty(email, "Email").lower()
        require_min_length(password, "Password", 8)

        if self._users.get_by_email(email):
            raise ValidationError("Email already in use")

        return self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role,
        )

    def ensure_account(self, *, name: str, email: str, password: str, role: Role) -> bool:
        """Create the account unless the email already exists. Returns True when created."""
        if self._users.get_by_email(email):
            return False
        self.create_account(name=name, email=email, password=password, role=role)
        return True
