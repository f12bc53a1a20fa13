"""Address ORM — postal address exclusively owned by one User.

Invariants:
    - Always belongs to exactly one User (user_id FK, unique, cascade on delete)
    - postal_code is 8 digits and non-nullable; every other field is optional
    - Fields are overwritten together (overwrite) — never partially merged
"""

from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from user_directory.core.domain_types import POSTAL_CODE_LENGTH, STATE_CODE_LENGTH
from user_directory.core.user_records import AddressData
from user_directory.db.base import Base


class Address(Base):
    """Address value owned by a User."""
    __tablename__ = "addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    postal_code: Mapped[str] = mapped_column(String(POSTAL_CODE_LENGTH), nullable=False)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    neighborhood: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(STATE_CODE_LENGTH), nullable=True)
    complement: Mapped[str | None] = mapped_column(String(100), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="address")

    @classmethod
    def from_data(cls, data: AddressData) -> "Address":
        address = cls()
        address.overwrite(data)
        return address

    def overwrite(self, data: AddressData) -> None:
        self.postal_code = data.postal_code
        self.street = data.street
        self.neighborhood = data.neighborhood
        self.city = data.city
        self.state = data.state
        self.complement = data.complement
