import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from .models import AuthUser as AuthUserRow

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 8)))  # 8 hours

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class IdentityError(Exception):
    """Gagal membuat user, login, atau resolve token."""


@dataclass
class AuthUser:
    id: str
    email: str
    user_metadata: Dict[str, Any] = field(default_factory=dict)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


class IdentityProvider:
    """
    Identity provider lokal: simpan kredensial, terbitkan bearer token (JWT),
    dan resolve token -> identitas user. Role disimpan di user_metadata saat signup.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        secret_key: Optional[str] = None,
        expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES,
    ):
        self._session_factory = session_factory
        self._secret_key = secret_key or SECRET_KEY
        self._expire_minutes = expire_minutes

    def create_user(self, email: str, password: str, user_metadata: Dict[str, Any]) -> AuthUser:
        email = email.strip().lower()
        db = self._session_factory()
        try:
            if db.query(AuthUserRow).filter(AuthUserRow.email == email).first():
                raise IdentityError("A user with this email address has already been registered")
            row = AuthUserRow(
                id=str(uuid.uuid4()),
                email=email,
                password_hash=get_password_hash(password),
                user_metadata=dict(user_metadata),
            )
            db.add(row)
            db.commit()
            return AuthUser(id=row.id, email=row.email, user_metadata=dict(row.user_metadata))
        except IntegrityError:
            db.rollback()
            raise IdentityError("A user with this email address has already been registered")
        finally:
            db.close()

    def delete_user(self, user_id: str) -> None:
        db = self._session_factory()
        try:
            db.query(AuthUserRow).filter(AuthUserRow.id == user_id).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self._expire_minutes))
        return jwt.encode({"sub": user_id, "exp": expire}, self._secret_key, algorithm=ALGORITHM)

    def sign_in(self, email: str, password: str) -> str:
        db = self._session_factory()
        try:
            row = db.query(AuthUserRow).filter(AuthUserRow.email == email.strip().lower()).first()
        finally:
            db.close()
        if not row or not verify_password(password, row.password_hash):
            raise IdentityError("Invalid login credentials")
        return self.create_access_token(row.id)

    def get_user(self, token: str) -> AuthUser:
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except JWTError:
            raise IdentityError("Invalid token")
        user_id = payload.get("sub")
        if user_id is None:
            raise IdentityError("Invalid token")
        db = self._session_factory()
        try:
            row = db.get(AuthUserRow, user_id)
        finally:
            db.close()
        if not row:
            raise IdentityError("User not found")
        return AuthUser(id=row.id, email=row.email, user_metadata=dict(row.user_metadata or {}))
