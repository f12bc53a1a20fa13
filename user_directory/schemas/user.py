"""User Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - UserCreate: name 1-100 chars (stripped), email shape, cpf exactly 11 digits,
      optional postal code "12345678" or "12345-678"
    - UserUpdate: every field optional; blank strings pass through (they are no-ops
      downstream), non-blank values must satisfy the same shape rules as on create
    - Responses are built from core snapshots (from_attributes), never from ORM rows

Design Decisions:
    - Regex email check over EmailStr: no extra dependency for a shape check
    - to_command() keeps the route handlers free of field plumbing
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from user_directory.core.domain_types import EMAIL_MAX_LENGTH, NAME_MAX_LENGTH
from user_directory.core.pagination import Page
from user_directory.core.user_records import (
    CreateUserCommand, UpdateUserCommand, UserSnapshot,
)
from user_directory.core.user_stats import UserStatistics

EMAIL_PATTERN = r"^[^@\s]+@[^@\s.]+(\.[^@\s.]+)+$"
CPF_PATTERN = r"^\d{11}$"
POSTAL_CODE_PATTERN = r"^\d{5}-?\d{3}$"


class UserCreate(BaseModel):
    """User creation — validates every field before the workflow sees it."""
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    email: str = Field(max_length=EMAIL_MAX_LENGTH, pattern=EMAIL_PATTERN)
    cpf: str = Field(pattern=CPF_PATTERN)
    postal_code: str | None = Field(None, pattern=POSTAL_CODE_PATTERN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v

    def to_command(self) -> CreateUserCommand:
        return CreateUserCommand(
            name=self.name, email=self.email, cpf=self.cpf,
            postal_code=self.postal_code,
        )


class UserUpdate(BaseModel):
    """Partial update — absent or blank fields leave the user untouched."""
    name: str | None = Field(None, max_length=NAME_MAX_LENGTH)
    email: str | None = Field(None, max_length=EMAIL_MAX_LENGTH)
    postal_code: str | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        if v is not None and v.strip() and not re.match(EMAIL_PATTERN, v):
            raise ValueError("email must look like name@domain.tld")
        return v

    @field_validator("postal_code")
    @classmethod
    def check_postal_code(cls, v: str | None) -> str | None:
        if v is not None and v.strip() and not re.match(POSTAL_CODE_PATTERN, v):
            raise ValueError("postal code must have 8 digits")
        return v

    def to_command(self) -> UpdateUserCommand:
        return UpdateUserCommand(
            name=self.name, email=self.email, postal_code=self.postal_code,
        )


class AddressResponse(BaseModel):
    """Stored address; is_complete mirrors what statistics count as "with address"."""
    model_config = ConfigDict(from_attributes=True)

    postal_code: str
    street: str | None
    neighborhood: str | None
    city: str | None
    state: str | None
    complement: str | None
    is_complete: bool


class UserResponse(BaseModel):
    """User response — public-facing user data."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    cpf: str
    address: AddressResponse | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_snapshot(cls, snapshot: UserSnapshot) -> "UserResponse":
        return cls.model_validate(snapshot)


class UserPage(BaseModel):
    content: list[UserResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page[UserSnapshot]) -> "UserPage":
        return cls(
            content=[UserResponse.from_snapshot(s) for s in page.items],
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
        )


class UserStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    users_with_address: int
    users_without_address: int
    address_completion_rate: float

    @classmethod
    def from_stats(cls, stats: UserStatistics) -> "UserStatsResponse":
        return cls.model_validate(stats)


class BatchSummaryResponse(BaseModel):
    summary: str
