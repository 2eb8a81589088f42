"""
Freshservice Ticket Classes

This module provides a class-based approach to handling Freshservice tickets,
agents and attachments as returned by the Freshservice v2 REST API.
"""

from typing import Dict, Any, List, Optional, Union
from dataclasses import dataclass, field

# Closed set of values a mapped field can hold
FieldValue = Union[str, List[str], int, float, bool, None]

# Keys parsed into dedicated attributes; everything else stays in Ticket.fields
_STRUCTURED_KEYS = ("id", "custom_fields", "requester", "responder_id", "attachments")


@dataclass
class Requester:
    """Represents the person who raised a Freshservice ticket."""
    id: Optional[int] = None
    name: str = ""
    email: str = ""

    @classmethod
    def from_fs_data(cls, requester_data: Optional[Dict[str, Any]]) -> Optional['Requester']:
        """Create Requester from Freshservice API data."""
        if not requester_data:
            return None

        return cls(
            id=requester_data.get("id"),
            name=requester_data.get("name") or "",
            email=requester_data.get("email") or "",
        )

    def has_email(self) -> bool:
        return bool(self.email)


@dataclass
class Agent:
    """Represents a Freshservice agent (the ticket responder)."""
    id: Optional[int] = None
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    job_title: str = ""

    @classmethod
    def from_fs_data(cls, agent_data: Optional[Dict[str, Any]]) -> Optional['Agent']:
        """Create Agent from Freshservice API data."""
        if not agent_data:
            return None

        return cls(
            id=agent_data.get("id"),
            first_name=agent_data.get("first_name") or "",
            last_name=agent_data.get("last_name") or "",
            email=agent_data.get("email") or "",
            job_title=agent_data.get("job_title") or "",
        )

    def full_name(self) -> str:
        """First and last name, or an empty string without a first name."""
        if not self.first_name:
            return ""
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name


@dataclass
class TicketAttachment:
    """Represents a file attached to a Freshservice ticket."""
    name: str = ""
    attachment_url: str = ""
    content_type: str = "application/octet-stream"
    id: Optional[int] = None

    @classmethod
    def from_fs_data(cls, attachment_data: Dict[str, Any]) -> 'TicketAttachment':
        """Create TicketAttachment from Freshservice API data."""
        return cls(
            name=attachment_data.get("name") or "",
            attachment_url=attachment_data.get("attachment_url") or "",
            content_type=attachment_data.get("content_type") or "application/octet-stream",
            id=attachment_data.get("id"),
        )

    def is_valid(self) -> bool:
        """Check if the attachment has both a name and a download URL."""
        return bool(self.name and self.attachment_url)

    def __str__(self) -> str:
        return f"TicketAttachment(name='{self.name}', url='{self.attachment_url}')"


@dataclass
class Ticket:
    """
    Represents a Freshservice ticket.

    Well-known top-level fields (subject, description, created_at, ...) are
    kept in ``fields`` so that mapping records can address them by key;
    tenant specific fields live in ``custom_fields``.
    """

    id: int
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    custom_fields: Dict[str, FieldValue] = field(default_factory=dict)
    requester: Optional[Requester] = None
    responder_id: Optional[int] = None
    attachments: List[TicketAttachment] = field(default_factory=list)

    @classmethod
    def from_fs_data(cls, ticket_data: Dict[str, Any]) -> 'Ticket':
        """
        Create Ticket from a Freshservice ticket payload.

        Args:
            ticket_data: Raw ticket object from the list or detail endpoint

        Returns:
            Ticket instance populated with Freshservice data
        """
        raw_attachments = ticket_data.get("attachments") or []

        return cls(
            id=ticket_data.get("id"),
            fields={key: value for key, value in ticket_data.items() if key not in _STRUCTURED_KEYS},
            custom_fields=dict(ticket_data.get("custom_fields") or {}),
            requester=Requester.from_fs_data(ticket_data.get("requester")),
            responder_id=ticket_data.get("responder_id"),
            attachments=[TicketAttachment.from_fs_data(att) for att in raw_attachments],
        )

    @property
    def subject(self) -> str:
        return self.fields.get("subject") or ""

    def get(self, key: str) -> FieldValue:
        """Read a well-known field; ``id`` resolves to the ticket id."""
        if key == "id":
            return self.id
        if key == "responder_id":
            return self.responder_id
        return self.fields.get(key)

    def get_custom(self, key: str) -> FieldValue:
        return self.custom_fields.get(key)

    def correlation_id(self, correlation_field: str) -> Optional[str]:
        """
        Linked work item id stored on the ticket, or None when unlinked.

        Args:
            correlation_field: Custom field key holding the work item id
        """
        value = self.custom_fields.get(correlation_field)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def has_attachments(self) -> bool:
        return bool(self.attachments)

    def __str__(self) -> str:
        return f"Ticket({self.id}: {self.subject})"
