"""
Freshservice to Azure DevOps reconciliation engine.

For each ticket the engine decides between the create path (no linked work
item yet) and the refresh path (linked work item exists), drives the remote
calls through the adapters and reports the result. A ticket's failure is
contained: process_ticket always returns a SyncOutcome.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, TypeVar

from loguru import logger

import constants
from adapters import SourceTicketAdapter, TargetWorkItemAdapter
from errors import AttachmentError, RemoteError
from models import (
    Direction,
    MappingSet,
    PatchOperation,
    Ticket,
    WorkItem,
    to_patch_operations,
)
from report_manager import RunReporter
from transformer import (
    build_forward,
    build_product_block,
    build_repository_block,
    build_requester_fields,
    build_responder_fields,
    build_reverse,
)

T = TypeVar("T")


class OutcomeStatus(Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class SyncOutcome:
    """Result of processing one ticket."""
    status: OutcomeStatus
    ticket_id: Optional[int]
    work_item_id: Optional[int] = None
    reason: str = ""
    error: Optional[Exception] = None

    @classmethod
    def created(cls, ticket_id: Optional[int], work_item_id: Optional[int]) -> 'SyncOutcome':
        return cls(OutcomeStatus.CREATED, ticket_id, work_item_id)

    @classmethod
    def updated(cls, ticket_id: Optional[int], work_item_id: Optional[int]) -> 'SyncOutcome':
        return cls(OutcomeStatus.UPDATED, ticket_id, work_item_id)

    @classmethod
    def skipped(cls, ticket_id: Optional[int], reason: str) -> 'SyncOutcome':
        return cls(OutcomeStatus.SKIPPED, ticket_id, reason=reason)

    @classmethod
    def failed(cls, ticket_id: Optional[int], reason: str, error: Optional[Exception] = None,
               work_item_id: Optional[int] = None) -> 'SyncOutcome':
        return cls(OutcomeStatus.FAILED, ticket_id, work_item_id, reason, error)


@dataclass(frozen=True)
class SyncSettings:
    """Field keys and paging knobs used by the engine and the batch runner."""
    correlation_field: str = "source_control_reference"
    link_back_field: Optional[str] = "source_control_reference"
    repo_field_key: str = "System.Description"
    requester_field_key: str = "Custom.ReqID"
    responder_field_key: str = "Custom.IMSTechnician"
    page_size: int = 5
    max_workers: int = 5

    @classmethod
    def from_constants(cls) -> 'SyncSettings':
        return cls(
            correlation_field=constants.FS_CORRELATION_FIELD,
            link_back_field=constants.FS_FIELD_FOR_ADO_BUG_ID or None,
            repo_field_key=constants.ADO_REPO_FIELD_KEY,
            requester_field_key=constants.ADO_REQUESTER_FIELD_KEY,
            responder_field_key=constants.ADO_RESPONDER_FIELD_KEY,
            page_size=constants.SYNC_PAGE_SIZE,
            max_workers=constants.SYNC_MAX_WORKERS,
        )


def parse_work_item_id(raw: str) -> Optional[int]:
    """Positive integer work item id from a correlation value, else None."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    return value if value > 0 else None


class SyncEngine:
    """
    Per-ticket reconciliation between Freshservice and Azure DevOps.

    Args:
        source: Freshservice adapter
        target: Azure DevOps adapter
        mappings: Validated mapping set for this run (read-only)
        reporter: Run reporter shared by all workers of the run
        settings: Field keys and paging knobs
    """

    def __init__(
        self,
        source: SourceTicketAdapter,
        target: TargetWorkItemAdapter,
        mappings: MappingSet,
        reporter: RunReporter,
        settings: Optional[SyncSettings] = None,
    ):
        self.source = source
        self.target = target
        self.mappings = mappings
        self.reporter = reporter
        self.settings = settings or SyncSettings()

        self.forward_mappings = mappings.fields_for(Direction.SOURCE_TO_TARGET)
        self.reverse_mappings = mappings.fields_for(Direction.TARGET_TO_SOURCE)
        self.repo_mappings = mappings.repository_fields()
        self.product_mappings = mappings.product_fields()

    @staticmethod
    def _call(operation: str, func: Callable[..., T], *args: Any,
              ticket_id: Optional[int] = None, work_item_id: Optional[int] = None) -> T:
        """Run one adapter call, attaching ticket and work item context to failures."""
        try:
            return func(*args)
        except RemoteError as e:
            raise e.with_context(operation, ticket_id, work_item_id)

    def process_ticket(self, ticket: Ticket) -> SyncOutcome:
        """
        Create or refresh the work item linked to one ticket.

        Never raises: failures are logged, reported and returned as FAILED.
        """
        logger.info("Processing ticket ID: {}", ticket.id)
        try:
            link = ticket.correlation_id(self.settings.correlation_field)
            if not link:
                return self.create_linked_work_item(ticket)
            return self.refresh_from_work_item(ticket, link)

        except RemoteError as e:
            logger.error("Error processing ticket {} during {}: {}", ticket.id, e.operation, e)
            self.reporter.record_error(
                f"SyncEngine - {e.operation or 'processTicket'}",
                f"Error processing ticket ID {ticket.id}: {e}",
                e.context(),
                {"fs_ticket_id": str(ticket.id), "ado_bug_id": str(e.work_item_id or "")},
            )
            return SyncOutcome.failed(ticket.id, str(e), e, e.work_item_id)

        except Exception as e:
            logger.exception("Unexpected error processing ticket {}", ticket.id)
            self.reporter.record_error(
                "SyncEngine - processTicket",
                f"Error processing ticket ID {ticket.id}: {e}",
                {"type": type(e).__name__},
                {"fs_ticket_id": str(ticket.id)},
            )
            return SyncOutcome.failed(ticket.id, str(e), e)

    def build_create_patch(self, ticket: Ticket, agent) -> List[PatchOperation]:
        """Concatenate every forward fragment into one create patch."""
        assignments = list(build_forward(ticket, self.forward_mappings))
        assignments.extend(build_requester_fields(ticket, self.settings.requester_field_key))
        assignments.extend(build_responder_fields(agent, self.settings.responder_field_key))

        repository_block = build_repository_block(ticket, self.repo_mappings, self.settings.repo_field_key)
        if repository_block:
            assignments.append(repository_block)

        product_block = build_product_block(ticket, self.product_mappings, self.mappings)
        if product_block.warning:
            self.reporter.record_warning(
                "SyncEngine - buildProductFields",
                str(product_block.warning),
                {
                    "product_name": product_block.warning.product_name,
                    "product_version": product_block.warning.product_version,
                },
                {"fs_ticket_id": str(ticket.id)},
            )
        assignments.extend(product_block.assignments)

        return to_patch_operations(assignments)

    def create_linked_work_item(self, base_ticket: Ticket) -> SyncOutcome:
        """
        Create a work item for an unlinked ticket and link it back.

        Steps: fetch detail, fetch responder, build the patch, create, copy
        attachments, then write the correlation and reverse-mapped fields
        onto the ticket.
        """
        ticket_id = base_ticket.id
        logger.info("Creating ADO work item for FS Ticket ID: {}", ticket_id)

        ticket = self._call("fetchTicketDetail", self.source.fetch_detail, ticket_id, ticket_id=ticket_id)

        if ticket.requester and ticket.requester.has_email():
            logger.info("FS Ticket ID: {} requested by {} ({})", ticket_id, ticket.requester.name, ticket.requester.email)

        agent = None
        if ticket.responder_id:
            agent = self._call("fetchAgent", self.source.fetch_agent, ticket.responder_id, ticket_id=ticket_id)
            if agent:
                logger.info("FS Agent {} for Ticket ID {}: {}", agent.id, ticket_id, agent.full_name())

        patch = self.build_create_patch(ticket, agent)
        logger.debug("Final ADO patch for FS Ticket ID {}: {}", ticket_id, patch)

        work_item = self._call("createWorkItem", self.target.create_work_item, patch, ticket_id=ticket_id)

        if work_item is None or not work_item.has_id():
            reason = "create returned no id"
            logger.error("Failed to create ADO work item for FS Ticket ID {}: {}", ticket_id, reason)
            self.reporter.record_error(
                "SyncEngine - createWorkItem",
                f"Failed to create ADO Bug for FS Ticket ID: {ticket_id}: {reason}",
                {"patch_size": len(patch)},
                {"fs_ticket_id": str(ticket_id)},
            )
            return SyncOutcome.failed(ticket_id, reason)

        logger.info("Created ADO work item ID: {} for FS Ticket ID: {}", work_item.id, ticket_id)
        self.reporter.record_created(ticket, work_item, patch)

        if ticket.has_attachments():
            self.copy_attachments(ticket, work_item)

        self.update_ticket_from_work_item(ticket, work_item)
        logger.info("Linked FS Ticket ID: {} with ADO work item ID: {}", ticket_id, work_item.id)
        return SyncOutcome.created(ticket_id, work_item.id)

    def refresh_from_work_item(self, ticket: Ticket, link: str) -> SyncOutcome:
        """Pull the linked work item's current values back onto the ticket."""
        work_item_id = parse_work_item_id(link)
        if work_item_id is None:
            reason = f"invalid linked work item id '{link}'"
            self.reporter.record_warning(
                "SyncEngine - refreshFromWorkItem",
                f"Skipping FS Ticket ID {ticket.id}: {reason}",
                operation_data={"fs_ticket_id": str(ticket.id)},
            )
            return SyncOutcome.skipped(ticket.id, reason)

        logger.info("FS Ticket ID: {} already linked to ADO work item {}. Starting update flow.", ticket.id, work_item_id)
        work_item = self._call(
            "getWorkItem", self.target.get_work_item, work_item_id,
            ticket_id=ticket.id, work_item_id=work_item_id,
        )
        logger.debug("Fetched ADO work item for FS Ticket ID {}: {}", ticket.id, work_item)

        self.update_ticket_from_work_item(ticket, work_item)
        return SyncOutcome.updated(ticket.id, work_item.id)

    def update_ticket_from_work_item(self, ticket: Ticket, work_item: WorkItem) -> None:
        """Write the correlation id and reverse-mapped fields onto the ticket."""
        update_body = build_reverse(work_item, self.reverse_mappings, self.settings.link_back_field)

        self._call(
            "updateTicket", self.source.update_ticket, ticket.id, update_body,
            ticket_id=ticket.id, work_item_id=work_item.id,
        )
        logger.info("Updated FS Ticket ID: {} from ADO work item ID: {}", ticket.id, work_item.id)
        self.reporter.record_updated(ticket, work_item, update_body)

    def copy_attachments(self, ticket: Ticket, work_item: WorkItem) -> int:
        """
        Copy ticket attachments to the work item, one at a time, in order.

        A failing attachment is reported and skipped; the work item is kept.

        Returns:
            int: Number of attachments linked
        """
        logger.info("Uploading and attaching {} attachments for ADO work item ID: {}", len(ticket.attachments), work_item.id)
        linked = 0

        for attachment in ticket.attachments:
            try:
                if not attachment.is_valid():
                    raise ValueError(f"attachment has no name or URL: {attachment}")

                content = self.source.fetch_attachment_bytes(attachment.attachment_url)
                upload = self.target.upload_attachment(attachment.name, attachment.content_type, content)
                logger.info("Uploaded attachment {} to ADO. Attachment ID: {}", attachment.name, upload.get("id"))

                self.target.link_attachment(
                    work_item.id,
                    upload["url"],
                    f"Attached from Freshservice ticket {ticket.id}",
                )
                linked += 1
                logger.info("Attached {} to ADO work item ID: {}", attachment.name, work_item.id)

            except (RemoteError, ValueError, KeyError) as e:
                error = AttachmentError(attachment.name, e)
                logger.error("Error attaching file for FS Ticket ID {}: {}", ticket.id, error)
                self.reporter.record_error(
                    "SyncEngine - copyAttachments",
                    f"Error uploading and attaching files for FS Ticket ID {ticket.id}: {error}",
                    e.context() if isinstance(e, RemoteError) else {"attachment": attachment.name},
                    {"fs_ticket_id": str(ticket.id), "ado_bug_id": str(work_item.id)},
                )

        logger.info("Completed attachments for FS Ticket ID {}: {}/{} linked", ticket.id, linked, len(ticket.attachments))
        return linked
