"""
Mapping workbook loader.

Reads the field-mapping Excel workbook (one sheet per record kind) and
builds a validated MappingSet. Any missing sheet, empty sheet or invalid
row fails the whole load with a ConfigError.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

from loguru import logger
from openpyxl import load_workbook

from errors import ConfigError
from models import (
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

REQUIRED_SHEETS = ["SingleField", "Repo", "URL", "ProductsFields", "ProductsData"]

Row = Dict[str, Any]


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text; whole floats such as 4.0 lose the '.0'."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def cell_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return cell_text(value).lower() == "true"


def parse_single_field_row(row: Row) -> SingleFieldMapping:
    return SingleFieldMapping(
        source_field=cell_text(row.get("FS-Field-Key")),
        is_custom=cell_flag(row.get("isCustomFieldFS")),
        is_multi_select=cell_flag(row.get("isMultiSelectFS")),
        value_type=FieldType.parse(cell_text(row.get("FS-Field-Type"))),
        target_field=cell_text(row.get("ADO-Field-Key")),
        direction=Direction.parse(cell_text(row.get("Direction"))),
    )


def parse_repo_row(row: Row) -> RepositoryMapping:
    return RepositoryMapping(
        source_field=cell_text(row.get("FS-Field-Key")),
        is_custom=cell_flag(row.get("isCustomFieldFS")),
        is_multi_select=cell_flag(row.get("isMultiSelectFS")),
        direction=Direction.parse(cell_text(row.get("Direction"))),
        title_text=cell_text(row.get("TitleText")),
    )


def parse_url_row(row: Row) -> UrlEntry:
    return UrlEntry(key=cell_text(row.get("Key")), value=cell_text(row.get("Value")))


def parse_product_field_row(row: Row) -> ProductFieldMapping:
    return ProductFieldMapping(
        target_field=cell_text(row.get("ADO-Field-Key")),
        catalog_key=cell_text(row.get("ProductsDataSheetKey")),
        direction=Direction.parse(cell_text(row.get("Direction"))),
    )


def parse_products_data_row(row: Row) -> ProductCatalogEntry:
    # Extra columns beyond the known attributes are kept so mappings may use them
    attributes = {name: cell_text(row.get(name)) for name in CATALOG_ATTRIBUTES}
    for column, value in row.items():
        if column and column not in attributes and column not in ("ProductName", "ProductVersion"):
            attributes[str(column)] = cell_text(value)

    return ProductCatalogEntry(
        product_name=cell_text(row.get("ProductName")),
        product_version=cell_text(row.get("ProductVersion")),
        attributes=tuple(attributes.items()),
    )


_SHEET_PARSERS = {
    "SingleField": parse_single_field_row,
    "Repo": parse_repo_row,
    "URL": parse_url_row,
    "ProductsFields": parse_product_field_row,
    "ProductsData": parse_products_data_row,
}


def _parse_sheet(sheet_name: str, rows: List[Row]) -> List[Any]:
    if not rows:
        raise ConfigError(f"No data found in the {sheet_name} sheet.")

    parser = _SHEET_PARSERS[sheet_name]
    records = []
    for index, row in enumerate(rows, start=2):
        try:
            records.append(parser(row))
        except ConfigError as e:
            raise ConfigError(f"{sheet_name} row {index}: {e}") from None

    logger.info("Successfully read {} {} mapping records.", len(records), sheet_name)
    return records


def build_mapping_set(sheets: Dict[str, List[Row]]) -> MappingSet:
    """
    Build a MappingSet from sheet rows keyed by header name.

    Args:
        sheets: Sheet name to list of row dictionaries

    Returns:
        MappingSet: The validated mapping configuration

    Raises:
        ConfigError: If a required sheet is missing, empty or invalid
    """
    for sheet_name in REQUIRED_SHEETS:
        if sheet_name not in sheets:
            raise ConfigError(f'Required sheet "{sheet_name}" is missing in the mapping workbook.')

    parsed = {name: _parse_sheet(name, sheets[name]) for name in REQUIRED_SHEETS}

    return MappingSet.create(
        single_fields=parsed["SingleField"],
        repository=parsed["Repo"],
        product_field_mappings=parsed["ProductsFields"],
        catalog=parsed["ProductsData"],
        urls=parsed["URL"],
    )


def read_workbook_rows(file_path: Union[str, Path]) -> Dict[str, List[Row]]:
    """
    Read every sheet of an .xlsx file into lists of row dictionaries.

    The first row of each sheet is the header; fully empty rows are skipped.
    """
    try:
        workbook = load_workbook(filename=str(file_path), read_only=True, data_only=True)
    except Exception as e:
        raise ConfigError(f"Failed to open mapping workbook {file_path}: {e}") from e

    sheets: Dict[str, List[Row]] = {}
    try:
        for worksheet in workbook.worksheets:
            row_iter = worksheet.iter_rows(values_only=True)
            header_row = next(row_iter, None)
            if header_row is None:
                sheets[worksheet.title] = []
                continue

            headers = [cell_text(cell) for cell in header_row]
            rows = []
            for values in row_iter:
                if all(value is None or cell_text(value) == "" for value in values):
                    continue
                rows.append({header: value for header, value in zip(headers, values) if header})
            sheets[worksheet.title] = rows
    finally:
        workbook.close()

    return sheets


def load_mapping_workbook(file_path: Union[str, Path]) -> MappingSet:
    """
    Load and validate the mapping workbook.

    Args:
        file_path: Path to the .xlsx mapping workbook

    Returns:
        MappingSet: The validated mapping configuration

    Raises:
        ConfigError: If the file is missing, not .xlsx, or has invalid content
    """
    path = Path(file_path)
    if path.suffix.lower() != ".xlsx":
        raise ConfigError(f"Only .xlsx mapping files are supported: {path}")
    if not path.exists():
        raise ConfigError(f"Mapping workbook not found: {path}")

    logger.info("Using mapping Excel file at: {}", path.resolve())
    mapping_set = build_mapping_set(read_workbook_rows(path))
    logger.info(
        "Loaded mappings: {} single field, {} repo, {} product field, {} catalog rows",
        len(mapping_set.single_fields),
        len(mapping_set.repository),
        len(mapping_set.product_field_mappings),
        len(mapping_set.catalog),
    )
    return mapping_set
