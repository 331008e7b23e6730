from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


_LIST_FIELDS = ("emails", "phone_numbers", "whatsapp_numbers", "sources")


class ContactRecord(BaseModel):
    """In-memory merge target for one person seen across export tables."""

    first_name: str | None = None
    last_name: str | None = None
    profile_url: str | None = None
    email: str | None = None
    emails: List[str] = Field(default_factory=list)
    phone_numbers: List[str] = Field(default_factory=list)
    whatsapp_numbers: List[str] = Field(default_factory=list)
    company: str | None = None
    position: str | None = None
    connected_on: str | None = None
    invitation_status: str | None = None
    invitation_sent_at: str | None = None
    invitation_message: str | None = None
    last_message_date: str | None = None
    last_message_content: str | None = None
    sources: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", validate_assignment=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def has_name(self) -> bool:
        return bool((self.first_name or "").strip()) and bool((self.last_name or "").strip())

    def merge(self, other: "ContactRecord") -> "ContactRecord":
        """Fold ``other`` into self: empty scalars are filled, lists are unioned in order."""
        for name in type(self).model_fields:
            incoming = getattr(other, name)
            if name in _LIST_FIELDS:
                current = getattr(self, name)
                for value in incoming:
                    if value and value not in current:
                        current.append(value)
                continue
            if not getattr(self, name) and incoming:
                setattr(self, name, incoming)
        return self
