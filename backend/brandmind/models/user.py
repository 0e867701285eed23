"""
User model.

A user is an account principal: a regular customer or an administrator.
Accounts are created inactive at registration and only become usable once
an administrator activates them.

SECURITY:
- password_hash holds a one-way salted digest, never the password
- completion_api_key_encrypted holds a Fernet ciphertext, never the key
- api_key is a long-lived bearer credential; only prefixes are ever logged
"""

from sqlalchemy import Boolean, Column, DateTime, Enum as SAEnum, Integer, String, Text

from brandmind.db_base import Base
from brandmind.entitlements.models import Role
from brandmind.models.base import TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    telegram_username = Column(String(255), nullable=True)

    role = Column(
        SAEnum(Role, native_enum=False, values_callable=lambda e: [m.value for m in e], length=32),
        nullable=False,
        default=Role.USER,
    )
    is_active = Column(Boolean, nullable=False, default=False)
    is_verified = Column(Boolean, nullable=False, default=False)

    api_key = Column(String(64), nullable=False, unique=True, index=True)
    completion_api_key_encrypted = Column(
        Text,
        nullable=True,
        comment="Fernet-encrypted upstream completion credential",
    )
    last_login = Column(DateTime(timezone=True), nullable=True)

    @property
    def has_completion_key(self) -> bool:
        return bool(self.completion_api_key_encrypted)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role}, is_active={self.is_active})>"
