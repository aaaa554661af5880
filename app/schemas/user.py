# app/schemas/user.py
import uuid
from typing import Literal

from sqlmodel import SQLModel

# App-level roles. "guest" = no token, so we don't store it here.
Role = Literal["user", "admin"]


class Requester(SQLModel):
    """
    Authenticated caller as resolved from the access token.

    Services receive this instead of the raw token or User row.
    """

    user_id: uuid.UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
