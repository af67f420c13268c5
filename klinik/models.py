from sqlalchemy import Column, String, JSON, func
from sqlalchemy.sql.sqltypes import DateTime
from .database import Base


class KVEntry(Base):
    """Satu dokumen JSON di bawah satu key (mis. 'user:<id>', 'transaction:<id>')."""
    __tablename__ = "kv_store"
    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=False)


class AuthUser(Base):
    __tablename__ = "auth_users"
    id = Column(String(36), primary_key=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    user_metadata = Column(JSON, nullable=False, default=dict)  # {'name': ..., 'role': ...}
    created_at = Column(DateTime(timezone=True), server_default=func.now())
