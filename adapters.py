"""
Interfaces the sync engine uses to reach Freshservice and Azure DevOps.

The concrete clients live in freshservice_client.py and devops_client.py;
tests pass in-memory implementations.
"""

from typing import Any, Dict, List, Optional, Protocol

from models import Agent, PatchOperation, Ticket, WorkItem


class SourceTicketAdapter(Protocol):
    """Freshservice operations needed by the sync."""

    def fetch_page(self, page: int, per_page: int) -> List[Ticket]:
        ...

    def fetch_detail(self, ticket_id: int) -> Ticket:
        ...

    def fetch_agent(self, agent_id: int) -> Optional[Agent]:
        ...

    def update_ticket(self, ticket_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def fetch_attachment_bytes(self, url: str) -> bytes:
        ...


class TargetWorkItemAdapter(Protocol):
    """Azure DevOps operations needed by the sync."""

    def create_work_item(self, patch: List[PatchOperation]) -> WorkItem:
        ...

    def get_work_item(self, work_item_id: int) -> WorkItem:
        ...

    def update_work_item(self, work_item_id: int, patch: List[PatchOperation]) -> WorkItem:
        ...

    def upload_attachment(self, name: str, content_type: str, content: bytes) -> Dict[str, Any]:
        ...

    def link_attachment(self, work_item_id: int, url: str, comment: str = "") -> WorkItem:
        ...
