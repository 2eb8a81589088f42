"""
Models package for the Freshservice to Azure DevOps synchronization.

This package contains the ticket, work item and mapping record classes
shared by the loader, the transformer and the sync engine.
"""

from .ticket import Agent, FieldValue, Requester, Ticket, TicketAttachment
from .work_item import (
    FieldAssignment,
    PatchOperation,
    WorkItem,
    attachment_link_operation,
    field_operation,
    summarize_patch,
    to_patch_operations,
)
from .mapping import (
    CATALOG_ATTRIBUTES,
    Direction,
    FieldType,
    MappingSet,
    ProductCatalogEntry,
    ProductFieldMapping,
    RepositoryMapping,
    SingleFieldMapping,
    UrlEntry,
)


__all__ = [
    'Agent',
    'FieldValue',
    'Requester',
    'Ticket',
    'TicketAttachment',
    'FieldAssignment',
    'PatchOperation',
    'WorkItem',
    'attachment_link_operation',
    'field_operation',
    'summarize_patch',
    'to_patch_operations',
    'CATALOG_ATTRIBUTES',
    'Direction',
    'FieldType',
    'MappingSet',
    'ProductCatalogEntry',
    'ProductFieldMapping',
    'RepositoryMapping',
    'SingleFieldMapping',
    'UrlEntry',
]
