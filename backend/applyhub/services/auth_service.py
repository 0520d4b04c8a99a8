import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from applyhub.config import settings
from applyhub.constants import UserRole
from applyhub.exceptions import InvalidParameterError, OperationNotAllowedError
from applyhub.models.user import User
from applyhub.utils.security import (
    generate_session_token,
    hash_password,
    password_needs_rehash,
    verify_password,
)


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @classmethod
    def for_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=UserRole(user.role))


class AuthService:
    def __init__(self):
        self._active_tokens: dict[str, tuple[str, float]] = {}  # token -> (user_id, expires_at)

    def _cleanup_expired(self):
        now = time.time()
        self._active_tokens = {
            t: entry for t, entry in self._active_tokens.items() if entry[1] > now
        }

    def register(
        self,
        db: Session,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: UserRole = UserRole.APPLICANT,
    ) -> User:
        if len(password) < 8:
            raise InvalidParameterError("Password must be at least 8 characters")
        user = User(
            id=str(uuid.uuid4()),
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            role=UserRole(role).value,
            password_hash=hash_password(password),
            created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise OperationNotAllowedError("Email already registered")
        db.refresh(user)
        return user

    def login(self, db: Session, email: str, password: str, throttle_key: str = "login") -> dict | None:
        delay = self._get_throttle_delay(db, throttle_key)
        if delay > 0:
            return {"error": "too_many_attempts", "retry_after_seconds": delay}

        user = db.query(User).filter(User.email == email.strip().lower()).first()
        if not user or not user.password_hash or not verify_password(user.password_hash, password):
            self._record_failed_attempt(db, throttle_key)
            return None

        if password_needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            db.commit()
        self._reset_failed_attempts(db, throttle_key)
        token = generate_session_token()
        self._active_tokens[token] = (user.id, time.time() + settings.session_ttl_seconds)
        return {"token": token, "expires_in_seconds": settings.session_ttl_seconds}

    def logout(self, token: str):
        self._active_tokens.pop(token, None)

    def resolve(self, token: str) -> str | None:
        self._cleanup_expired()
        entry = self._active_tokens.get(token)
        return entry[0] if entry else None

    def _get_throttle_delay(self, db: Session, key: str) -> float:
        row = db.execute(
            text("SELECT failed_attempts, last_failed_at FROM auth_throttle WHERE key = :key"),
            {"key": key},
        ).fetchone()
        if not row:
            return 0
        failed_attempts = int(row[0])
        last_failed_at = float(row[1])

        if failed_attempts < 3:
            return 0
        if failed_attempts < 5:
            delay = 5.0
        elif failed_attempts < 10:
            delay = 30.0
        else:
            delay = 300.0
        elapsed = time.time() - last_failed_at
        return max(0, delay - elapsed)

    def _record_failed_attempt(self, db: Session, key: str):
        db.execute(
            text(
                """
                INSERT INTO auth_throttle (key, failed_attempts, last_failed_at)
                VALUES (:key, 1, :now)
                ON CONFLICT(key) DO UPDATE SET
                    failed_attempts = failed_attempts + 1,
                    last_failed_at = :now
                """
            ),
            {"key": key, "now": time.time()},
        )
        db.commit()

    def _reset_failed_attempts(self, db: Session, key: str):
        db.execute(
            text("DELETE FROM auth_throttle WHERE key = :key"),
            {"key": key},
        )
        db.commit()


auth_service = AuthService()
