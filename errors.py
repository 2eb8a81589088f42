"""
Error types shared by the mapping loader, the remote clients and the sync engine.
"""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for all synchronization errors."""


class ConfigError(SyncError):
    """Mapping workbook or environment configuration is missing or malformed."""


class RemoteError(SyncError):
    """
    A call to Freshservice or Azure DevOps failed.

    Carries the HTTP status and response body when the remote side answered,
    plus the ticket/work item context added by the sync engine.
    """

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data
        self.operation: Optional[str] = None
        self.ticket_id: Optional[int] = None
        self.work_item_id: Optional[int] = None

    def with_context(
        self,
        operation: str,
        ticket_id: Optional[int] = None,
        work_item_id: Optional[int] = None,
    ) -> "RemoteError":
        # Keep the innermost operation name if one was already attached
        if self.operation is None:
            self.operation = operation
        if ticket_id is not None:
            self.ticket_id = ticket_id
        if work_item_id is not None:
            self.work_item_id = work_item_id
        return self

    def context(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "ticket_id": self.ticket_id,
            "work_item_id": self.work_item_id,
            "status": self.status,
            "data": self.data,
        }

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (status {self.status})"
        return self.message


class AttachmentError(SyncError):
    """Copying one attachment to the work item failed."""

    def __init__(self, attachment_name: str, cause: Exception):
        super().__init__(f"Attachment '{attachment_name}' failed: {cause}")
        self.attachment_name = attachment_name
        self.cause = cause


class NoProductMatchWarning(UserWarning):
    """The ticket's product name/version has no row in the product catalog."""

    def __init__(self, ticket_id: Optional[int], product_name: Any, product_version: Any):
        super().__init__(
            f"No matching product details found for ticket {ticket_id} with "
            f"Product Version: {product_version} and Product Name: {product_name}"
        )
        self.ticket_id = ticket_id
        self.product_name = product_name
        self.product_version = product_version
