from enum import Enum
from typing import Literal, NamedTuple
from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    ADMIN = "ADMIN"
    EVENT_ORGANIZER = "EVENT_ORGANIZER"
    ATTENDEE = "ATTENDEE"


class UserStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class TokenPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sub: str
    iat: int
    nbf: int
    exp: int
    role: Role
    status: UserStatus
    organizer_id: int | None = None
    jti: str | None = None
    typ: Literal["access", "refresh"] | None = None
    iss: str | None = None
    aud: str | list[str] | None = None


class Actor(NamedTuple):
    """Caller identity handed explicitly to every service operation."""
    user_id: int
    role: Role
    status: UserStatus
    organizer_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE
