"""Ticketing models shared by the ticket handler and ticketing adapters."""

from __future__ import annotations

import re
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value.strip()))


class TicketPlatform(str, Enum):
    FRESHDESK = "freshdesk"


class TicketPriority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    URGENT = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


class TicketStatus(str, Enum):
    """Platform-neutral ticket status vocabulary."""

    OPEN = "Open"
    PENDING = "Pending"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    UNKNOWN = "Unknown"


class TicketCreationParams(BaseModel):
    """Validated input for ``ITicketingProvider.create_ticket``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    email: str
    subject: str = Field(min_length=3)
    body: str = Field(min_length=5)
    priority: TicketPriority = TicketPriority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    custom_fields: dict[str, Any] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("Invalid email format")
        return value.strip()


class TicketResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticket_id: str
    ticket_url: str | None = None
    status: TicketStatus
    original_response: dict[str, Any] = Field(default_factory=dict)


class TicketInfo(BaseModel):
    """Ticket fields extracted from a conversation by the model.

    ``is_complete`` separates the collecting-info sub-state from the
    ready-to-submit one.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="", description="User's full name.")
    email: str = Field(default="", description="User's email address.")
    subject: str = Field(default="", description="A concise subject line for the ticket.")
    body: str = Field(default="", description="Detailed description of the issue or request.")
    priority: int = Field(
        default=2,
        ge=1,
        le=4,
        description="Ticket priority level: 1=Low, 2=Medium, 3=High, 4=Urgent.",
    )
    is_complete: bool = Field(
        default=False,
        description="Whether all necessary information is available to create the ticket.",
    )
    missing_fields: list[str] = Field(
        default_factory=list,
        description="List of fields that are missing or incomplete.",
    )

    def effective_missing_fields(self) -> list[str]:
        """Missing fields as reported by the model plus anything that fails validation."""
        missing = list(self.missing_fields)
        checks = {
            "name": bool(self.name.strip()),
            "email": is_valid_email(self.email) if self.email else False,
            "subject": len(self.subject.strip()) >= 3,
            "description": len(self.body.strip()) >= 5,
        }
        for field, ok in checks.items():
            if not ok and field not in missing:
                missing.append(field)
        return missing
