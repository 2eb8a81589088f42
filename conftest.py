"""
Shared pytest fixtures: in-memory Freshservice and Azure DevOps adapters and
a small mapping set resembling the production workbook.
"""

import threading
from typing import Any, Dict, List, Optional

import pytest

from errors import RemoteError
from models import (
    Agent,
    Direction,
    FieldType,
    MappingSet,
    ProductCatalogEntry,
    ProductFieldMapping,
    RepositoryMapping,
    SingleFieldMapping,
    Ticket,
    UrlEntry,
    WorkItem,
)
from report_manager import RunReporter
from sync_engine import SyncSettings

SAMPLE_TICKET = {
    "id": 101,
    "subject": "Login page crashes",
    "description": "<p>Crash on submit</p>",
    "priority": 2,
    "responder_id": 7,
    "requester": {"id": 55, "name": "Jane Roe", "email": "jane.roe@example.com"},
    "custom_fields": {
        "source_control_reference": None,
        "product_name": "Portal",
        "product_version": "4",
        "steps": "Open page, click submit",
        "browsers": ["Chrome", "Firefox"],
    },
    "attachments": [
        {
            "id": 1,
            "name": "crash.png",
            "attachment_url": "https://files.example.com/crash.png",
            "content_type": "image/png",
        },
    ],
}


class FakeSource:
    """In-memory Freshservice."""

    def __init__(self, pages: Optional[List[List[Ticket]]] = None, details: Optional[Dict[int, Ticket]] = None,
                 agents: Optional[Dict[int, Agent]] = None):
        self.pages = pages or []
        self.details = details or {}
        self.agents = agents or {}
        self.attachment_content: Dict[str, bytes] = {}
        self.page_calls: List[int] = []
        self.updates: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self.fail_update_for: set = set()
        self._lock = threading.Lock()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def fetch_page(self, page: int, per_page: int) -> List[Ticket]:
        self.page_calls.append(page)
        self._maybe_fail("fetch_page")
        if page - 1 < len(self.pages):
            return list(self.pages[page - 1])
        return []

    def fetch_detail(self, ticket_id: int) -> Ticket:
        self._maybe_fail("fetch_detail")
        if ticket_id not in self.details:
            raise RemoteError(f"Fetch ticket {ticket_id} failed. Status code: 404", status=404)
        return self.details[ticket_id]

    def fetch_agent(self, agent_id: int) -> Optional[Agent]:
        self._maybe_fail("fetch_agent")
        return self.agents.get(agent_id)

    def update_ticket(self, ticket_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        self._maybe_fail("update_ticket")
        if ticket_id in self.fail_update_for:
            raise RemoteError(f"Update ticket {ticket_id} failed. Status code: 500", status=500)
        with self._lock:
            self.updates.append((ticket_id, body))
        return {"id": ticket_id}

    def fetch_attachment_bytes(self, url: str) -> bytes:
        self._maybe_fail("fetch_attachment_bytes")
        if url not in self.attachment_content:
            raise RemoteError("Download attachment failed. Status code: 404", status=404)
        return self.attachment_content[url]


class FakeTarget:
    """In-memory Azure DevOps."""

    def __init__(self, first_id: int = 9000):
        self.next_id = first_id
        self.work_items: Dict[int, WorkItem] = {}
        self.created: List[list] = []
        self.uploads: List[tuple] = []
        self.links: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self.create_without_id = False
        self._lock = threading.Lock()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def create_work_item(self, patch) -> WorkItem:
        self._maybe_fail("create_work_item")
        if self.create_without_id:
            return WorkItem(id=None)
        with self._lock:
            work_item_id = self.next_id
            self.next_id += 1
            self.created.append(patch)
        fields = {op["path"][len("/fields/"):]: op["value"] for op in patch}
        work_item = WorkItem(id=work_item_id, rev=1, fields=fields)
        self.work_items[work_item_id] = work_item
        return work_item

    def get_work_item(self, work_item_id: int) -> WorkItem:
        self._maybe_fail("get_work_item")
        if work_item_id not in self.work_items:
            raise RemoteError(f"Fetch ADO work item {work_item_id} failed. Status code: 404", status=404)
        return self.work_items[work_item_id]

    def update_work_item(self, work_item_id: int, patch) -> WorkItem:
        self._maybe_fail("update_work_item")
        return self.work_items[work_item_id]

    def upload_attachment(self, name: str, content_type: str, content: bytes) -> Dict[str, Any]:
        self._maybe_fail("upload_attachment")
        self.uploads.append((name, content_type, content))
        return {"id": f"att-{len(self.uploads)}", "url": f"https://devops.example.com/attachments/{name}"}

    def link_attachment(self, work_item_id: int, url: str, comment: str = "") -> WorkItem:
        self._maybe_fail("link_attachment")
        self.links.append((work_item_id, url, comment))
        return self.work_items.get(work_item_id)


def make_mapping_set(urls=None) -> MappingSet:
    forward = Direction.SOURCE_TO_TARGET
    reverse = Direction.TARGET_TO_SOURCE
    return MappingSet.create(
        single_fields=[
            SingleFieldMapping("subject", "System.Title", forward),
            SingleFieldMapping("description", "Custom.FSDescription", forward),
            SingleFieldMapping("browsers", "Custom.Browsers", forward, is_custom=True, is_multi_select=True),
            SingleFieldMapping("ado_state", "System.State", reverse, is_custom=True, value_type=FieldType.TEXT),
            SingleFieldMapping("target_date", "Microsoft.VSTS.Scheduling.TargetDate", reverse,
                               is_custom=True, value_type=FieldType.DATE),
        ],
        repository=[
            RepositoryMapping("steps", "Steps", is_custom=True),
            RepositoryMapping("browsers", "Browsers", is_custom=True, is_multi_select=True),
        ],
        product_field_mappings=[
            ProductFieldMapping("System.AreaPath", "AreaPath"),
            ProductFieldMapping("System.IterationPath", "IterationPath"),
            ProductFieldMapping("System.AssignedTo", "AssignedTo"),
        ],
        catalog=[
            ProductCatalogEntry(
                "Portal", "4",
                (("AreaPath", "Web\\Portal"), ("IterationPath", "Web\\Sprint 12"), ("AssignedTo", "")),
            ),
        ],
        urls=urls if urls is not None else [UrlEntry("FS_FETCH_QUERY", "status:2 AND priority:>1")],
    )


@pytest.fixture
def sample_ticket() -> Ticket:
    return Ticket.from_fs_data(SAMPLE_TICKET)


@pytest.fixture
def mapping_set() -> MappingSet:
    return make_mapping_set()


@pytest.fixture
def reporter() -> RunReporter:
    return RunReporter()


@pytest.fixture
def settings() -> SyncSettings:
    return SyncSettings()


@pytest.fixture
def source(sample_ticket) -> FakeSource:
    fake = FakeSource(
        pages=[[Ticket(id=sample_ticket.id, custom_fields={"source_control_reference": None})]],
        details={sample_ticket.id: sample_ticket},
        agents={7: Agent(id=7, first_name="Sam", last_name="Agent", email="sam@example.com")},
    )
    fake.attachment_content["https://files.example.com/crash.png"] = b"\x89PNG"
    return fake


@pytest.fixture
def target() -> FakeTarget:
    return FakeTarget()
