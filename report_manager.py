"""
Run reporter.

Collects info, warning and error entries from every ticket worker of a run
so they can be summarized, written to the report workbook and e-mailed.
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from loguru import logger

from models import PatchOperation, Ticket, WorkItem, summarize_patch

SOURCE_TO_TARGET = "FS_TO_ADO"
TARGET_TO_SOURCE = "ADO_TO_FS"


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return "[Unserializable context]"


@dataclass
class ReportEntry:
    """One reported event."""
    operation: str
    message: str
    context: str = ""
    operation_data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self) -> Dict[str, Any]:
        row = {
            "timestamp": self.timestamp.isoformat(),
            "operation": self.operation,
            "message": self.message,
            "context": self.context,
        }
        row.update(self.operation_data)
        return row


class RunReporter:
    """
    Thread-safe accumulator of report entries for one run.

    Every append happens under a lock because ticket workers report
    concurrently.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._info: List[ReportEntry] = []
        self._warnings: List[ReportEntry] = []
        self._errors: List[ReportEntry] = []
        self.start_time: datetime = datetime.now(timezone.utc)
        self.end_time: Optional[datetime] = None

    def _append(self, bucket: List[ReportEntry], entry: ReportEntry) -> None:
        with self._lock:
            bucket.append(entry)

    def record_info(self, operation: str, message: str, context: Any = None,
                    operation_data: Optional[Dict[str, Any]] = None) -> None:
        entry = ReportEntry(operation, message, _to_json(context), dict(operation_data or {}))
        self._append(self._info, entry)
        logger.info("[Report] {} - {}", operation, message)

    def record_warning(self, operation: str, message: str, context: Any = None,
                       operation_data: Optional[Dict[str, Any]] = None) -> None:
        entry = ReportEntry(operation, message, _to_json(context), dict(operation_data or {}))
        self._append(self._warnings, entry)
        logger.warning("[Report] {} - {}", operation, message)

    def record_error(self, operation: str, message: str, context: Any = None,
                     operation_data: Optional[Dict[str, Any]] = None) -> None:
        entry = ReportEntry(operation, message, _to_json(context), dict(operation_data or {}))
        self._append(self._errors, entry)
        logger.error("[Report] {} - {} {}", operation, message, entry.context)

    def record_created(self, ticket: Ticket, work_item: WorkItem, patch: List[PatchOperation]) -> None:
        """Report a work item created from a ticket; each applied field becomes its own report column."""
        patch_summary = summarize_patch(patch)
        operation_data: Dict[str, Any] = {
            "direction": SOURCE_TO_TARGET,
            "fs_ticket_id": str(ticket.id),
            "ado_bug_id": str(work_item.id),
        }
        operation_data.update(patch_summary)
        self.record_info(
            "CREATE_ADO_BUG",
            f"Created ADO Bug ID: {work_item.id} for FS Ticket ID: {ticket.id}",
            patch_summary,
            operation_data,
        )

    def record_updated(self, ticket: Ticket, work_item: WorkItem, update_body: Dict[str, Any]) -> None:
        """Report a ticket refreshed from its work item; each written field becomes its own report column."""
        update_summary: Dict[str, Any] = {}
        for key, value in (update_body.get("custom_fields") or {}).items():
            update_summary[f"custom_fields.{key}"] = value
        for key, value in update_body.items():
            if key != "custom_fields":
                update_summary[key] = value

        operation_data: Dict[str, Any] = {
            "direction": TARGET_TO_SOURCE,
            "fs_ticket_id": str(ticket.id),
            "ado_bug_id": str(work_item.id),
        }
        operation_data.update(update_summary)
        self.record_info(
            "UPDATE_FS_TICKET_FROM_ADO_BUG",
            f"Updated FS Ticket ID: {ticket.id} from ADO Bug ID: {work_item.id}",
            update_summary,
            operation_data,
        )

    def summary(self) -> Dict[str, int]:
        with self._lock:
            return {
                "info_count": len(self._info),
                "warning_count": len(self._warnings),
                "error_count": len(self._errors),
            }

    def full_report(self) -> Dict[str, List[ReportEntry]]:
        """Snapshot copies of the three entry lists."""
        with self._lock:
            return {
                "info": list(self._info),
                "warnings": list(self._warnings),
                "errors": list(self._errors),
            }

    def mark_start(self) -> None:
        self.start_time = datetime.now(timezone.utc)
        self.end_time = None

    def mark_end(self) -> None:
        self.end_time = datetime.now(timezone.utc)

    def clear(self) -> None:
        with self._lock:
            self._info = []
            self._warnings = []
            self._errors = []
