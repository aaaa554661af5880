# app/models/address.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Address(SQLModel, table=True):
    """
    Shipping address owned by a user.

    Orders reference it by id; address CRUD lives outside this service.
    """

    __tablename__ = "addresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    street: str = Field(max_length=255)
    city: str = Field(max_length=100)
    state: str = Field(max_length=50)
    postal_code: str = Field(max_length=20)
    number: str | None = Field(default=None, max_length=20)
    complement: str | None = Field(default=None, max_length=255)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
