"""User ORM — persists the aggregate root of the directory.

Invariants:
    - id is an integer surrogate key assigned by the database
    - email and cpf are unique (named constraints: the store is the final arbiter)
    - cpf and created_at never change after insert
    - updated_at is bumped by every mutation helper (touch)

Design Decisions:
    - Address is one-to-one with delete-orphan cascade: deleting a user deletes its address
    - lazy="selectin" on address: async sessions cannot lazy-load on attribute access
    - replace_address overwrites the existing row in place: avoids a transient duplicate
      on addresses.user_id between the INSERT of the new row and DELETE of the old one
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from user_directory.core.domain_types import (
    CPF_LENGTH, EMAIL_MAX_LENGTH, NAME_MAX_LENGTH,
)
from user_directory.core.user_records import AddressData
from user_directory.db.base import Base
from user_directory.models.address import Address


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """User entity — identity, contact data and an optional owned address."""
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("cpf", name="uq_users_cpf"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH), nullable=False)
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), nullable=False)
    cpf: Mapped[str] = mapped_column(String(CPF_LENGTH), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )

    address: Mapped[Optional[Address]] = relationship(
        "Address", back_populates="user", uselist=False,
        cascade="all, delete-orphan", lazy="selectin",
    )

    @classmethod
    def register(
        cls, name: str, email: str, cpf: str, address: AddressData | None = None,
    ) -> "User":
        """Build a new, not yet persisted user with matching timestamps."""
        now = utcnow()
        return cls(
            name=name,
            email=email,
            cpf=cpf,
            address=Address.from_data(address) if address else None,
            created_at=now,
            updated_at=now,
        )

    def touch(self) -> None:
        self.updated_at = utcnow()

    def replace_address(self, data: AddressData) -> None:
        """Overwrite every address field (no merge) and bump updated_at."""
        if self.address is None:
            self.address = Address.from_data(data)
        else:
            self.address.overwrite(data)
        self.touch()

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, name={self.name!r}, email={self.email!r})"
