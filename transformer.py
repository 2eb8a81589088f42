"""
Field transformer.

Pure functions that turn mapping records plus ticket or work item data into
outbound field assignments: the work item create patch (Freshservice to
Azure DevOps) and the ticket update body (Azure DevOps to Freshservice).
"""

from typing import Any, Dict, List, NamedTuple, Optional

from loguru import logger

from errors import NoProductMatchWarning
from models import (
    Agent,
    FieldAssignment,
    FieldType,
    FieldValue,
    MappingSet,
    ProductFieldMapping,
    RepositoryMapping,
    SingleFieldMapping,
    Ticket,
    WorkItem,
)
from models.utils import convert_date_to_iso, split_multi_select, stringify_multi_select

REPOSITORY_HEADER = "<b>Reproduction Steps:</b><br/>"

PRODUCT_NAME_FIELD = "product_name"
PRODUCT_VERSION_FIELD = "product_version"


class ProductBlock(NamedTuple):
    assignments: List[FieldAssignment]
    warning: Optional[NoProductMatchWarning] = None


def read_source_value(ticket: Ticket, source_field: str, is_custom: bool, is_multi_select: bool) -> FieldValue:
    """
    Read one ticket value the way the mapping addresses it.

    Multi-select lists are joined, missing values become an empty string.
    """
    value = ticket.get_custom(source_field) if is_custom else ticket.get(source_field)

    if is_multi_select and isinstance(value, list):
        value = stringify_multi_select(value)

    return "" if value is None else value


def build_forward(ticket: Ticket, mappings: List[SingleFieldMapping]) -> List[FieldAssignment]:
    """
    Build one work item assignment per Freshservice to Azure DevOps mapping.

    Empty values are emitted too so that the target field can be cleared.

    Args:
        ticket: Source ticket (detail view)
        mappings: Forward single-field mappings, in workbook order

    Returns:
        list: (target field, value) pairs in mapping order
    """
    if not mappings:
        logger.warning("FS to ADO mappings are not initialized or empty.")
        return []

    return [
        (mapping.target_field, read_source_value(ticket, mapping.source_field, mapping.is_custom, mapping.is_multi_select))
        for mapping in mappings
    ]


def build_repository_block(
    ticket: Ticket,
    repo_mappings: List[RepositoryMapping],
    target_field: str,
) -> Optional[FieldAssignment]:
    """
    Aggregate the repo mappings into a single HTML description assignment.

    Args:
        ticket: Source ticket
        repo_mappings: Repository mappings, in workbook order
        target_field: Work item field receiving the HTML

    Returns:
        tuple: (target field, html), or None when there are no repo mappings
    """
    if not repo_mappings:
        logger.warning("Repo mappings are not initialized or empty.")
        return None

    blocks = []
    for mapping in repo_mappings:
        value = read_source_value(ticket, mapping.source_field, mapping.is_custom, mapping.is_multi_select)
        blocks.append(f"<b>{mapping.title_text}:</b><br/> {value}<br/><br/>")

    return target_field, REPOSITORY_HEADER + "".join(blocks)


def build_product_block(
    ticket: Ticket,
    product_mappings: List[ProductFieldMapping],
    mapping_set: MappingSet,
) -> ProductBlock:
    """
    Fill routing fields (area, iteration, team, ...) from the product catalog.

    The catalog row is found with the ticket's product name and version custom
    fields. No match is not an error: the block is empty and carries a
    NoProductMatchWarning. Catalog attributes that are empty are omitted.
    """
    if not product_mappings:
        logger.warning("Product Field mappings are not initialized or empty.")
        return ProductBlock([])

    product_name = ticket.get_custom(PRODUCT_NAME_FIELD)
    product_version = ticket.get_custom(PRODUCT_VERSION_FIELD)
    entry = mapping_set.product_catalog_lookup(product_name, product_version)

    if entry is None:
        warning = NoProductMatchWarning(ticket.id, product_name, product_version)
        logger.warning("{}", warning)
        return ProductBlock([], warning)

    assignments: List[FieldAssignment] = []
    for mapping in product_mappings:
        if not entry.has_attribute(mapping.catalog_key):
            logger.warning(
                "Ticket {} - ProductsData has no column '{}' for ADO field {}; skipping",
                ticket.id,
                mapping.catalog_key,
                mapping.target_field,
            )
            continue

        value = entry.get(mapping.catalog_key)
        if value:
            assignments.append((mapping.target_field, value))

    return ProductBlock(assignments)


def build_requester_fields(ticket: Ticket, target_field: str) -> List[FieldAssignment]:
    """Requester e-mail assignment, when the ticket has a requester with an e-mail."""
    if ticket.requester and ticket.requester.has_email():
        return [(target_field, ticket.requester.email)]
    return []


def build_responder_fields(agent: Optional[Agent], target_field: str) -> List[FieldAssignment]:
    """Responder name assignment, when the agent has at least a first name."""
    if agent and agent.full_name():
        return [(target_field, agent.full_name())]
    return []


def convert_reverse_value(value: FieldValue, mapping: SingleFieldMapping) -> FieldValue:
    """Apply multi-select splitting and the mapping's value type to a work item value."""
    if value is not None and mapping.is_multi_select:
        value = split_multi_select(value)

    if value is None:
        value = ""

    if value and mapping.value_type == FieldType.DATE:
        value = convert_date_to_iso(str(value))
    elif value and mapping.value_type == FieldType.TEXT:
        value = str(value)

    return value


def build_reverse(
    work_item: WorkItem,
    reverse_mappings: List[SingleFieldMapping],
    correlation_field_key: Optional[str],
) -> Dict[str, Any]:
    """
    Build the Freshservice ticket update body from a work item.

    Args:
        work_item: Linked Azure DevOps work item
        reverse_mappings: Azure DevOps to Freshservice mappings
        correlation_field_key: Custom field receiving the work item id, if configured

    Returns:
        dict: Update body with a ``custom_fields`` map and top-level fields
    """
    update_body: Dict[str, Any] = {"custom_fields": {}}

    if correlation_field_key:
        update_body["custom_fields"][correlation_field_key] = str(work_item.id)

    if not reverse_mappings:
        logger.warning("ADO to FS mappings are not initialized or empty.")
        return update_body

    for mapping in reverse_mappings:
        value = convert_reverse_value(work_item.get_field(mapping.target_field), mapping)

        if mapping.is_custom:
            update_body["custom_fields"][mapping.source_field] = value
        else:
            update_body[mapping.source_field] = value

        logger.debug("Work item {} - {} -> {} = {}", work_item.id, mapping.target_field, mapping.source_field, value)

    return update_body
