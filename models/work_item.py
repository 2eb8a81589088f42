"""
Azure DevOps Work Item Class

This module provides the work item model and the JSON Patch operations used
to create and update work items through the Azure DevOps REST API.
"""

from typing import Dict, Any, List, Optional, Tuple
from dataclasses import dataclass, field

from .ticket import FieldValue

PatchOperation = Dict[str, Any]
FieldAssignment = Tuple[str, FieldValue]


def field_operation(target_field: str, value: FieldValue) -> PatchOperation:
    """JSON Patch 'add' operation for one work item field."""
    return {"op": "add", "path": f"/fields/{target_field}", "value": value}


def attachment_link_operation(url: str, comment: str = "") -> PatchOperation:
    """JSON Patch operation linking an uploaded attachment to a work item."""
    return {
        "op": "add",
        "path": "/relations/-",
        "value": {
            "rel": "AttachedFile",
            "url": url,
            "attributes": {"comment": comment},
        },
    }


def to_patch_operations(assignments: List[FieldAssignment]) -> List[PatchOperation]:
    """Convert (target field, value) pairs into JSON Patch operations, in order."""
    return [field_operation(target_field, value) for target_field, value in assignments]


def summarize_patch(patch: List[PatchOperation]) -> Dict[str, Any]:
    """Map each operation path to its value, for reporting."""
    return {op.get("path", ""): op.get("value") for op in patch}


@dataclass
class WorkItem:
    """Represents an Azure DevOps work item."""

    id: Optional[int]
    rev: Optional[int] = None
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    url: str = ""

    @classmethod
    def from_ado_data(cls, work_item_data: Optional[Dict[str, Any]]) -> 'WorkItem':
        """
        Create WorkItem from Azure DevOps API data.

        Args:
            work_item_data: Work item JSON as returned by the wit/workitems endpoints

        Returns:
            WorkItem instance; ``id`` is None when the payload carries none
        """
        work_item_data = work_item_data or {}
        return cls(
            id=work_item_data.get("id"),
            rev=work_item_data.get("rev"),
            fields=dict(work_item_data.get("fields") or {}),
            url=work_item_data.get("url") or "",
        )

    def has_id(self) -> bool:
        return self.id is not None and str(self.id).strip() != ""

    def get_field(self, key: str) -> FieldValue:
        """
        Read a field by reference name.

        ``id`` and ``rev`` are not part of the fields map in the REST payload;
        they resolve to the work item's own identifier and revision, as text
        so they can be written to Freshservice text fields.
        """
        if key in self.fields:
            return self.fields[key]
        if key == "id":
            return None if self.id is None else str(self.id)
        if key == "rev":
            return None if self.rev is None else str(self.rev)
        return None

    def __str__(self) -> str:
        return f"WorkItem(id={self.id}, rev={self.rev})"
