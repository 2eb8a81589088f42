"""
Tests for the mapping workbook loader and MappingSet validation.
"""

import pytest
from openpyxl import Workbook

from errors import ConfigError
from mapping_loader import build_mapping_set, cell_text, load_mapping_workbook
from models import Direction, FieldType, MappingSet, ProductCatalogEntry, SingleFieldMapping

SHEET_ROWS = {
    "SingleField": [
        {"FS-Field-Key": "subject", "isCustomFieldFS": "FALSE", "isMultiSelectFS": "FALSE",
         "FS-Field-Type": "", "ADO-Field-Key": "System.Title", "Direction": "FS_TO_ADO"},
        {"FS-Field-Key": "ado_state", "isCustomFieldFS": True, "isMultiSelectFS": False,
         "FS-Field-Type": "Text", "ADO-Field-Key": "System.State", "Direction": "ado_to_fs"},
    ],
    "Repo": [
        {"FS-Field-Key": "steps", "isCustomFieldFS": "TRUE", "isMultiSelectFS": "FALSE",
         "Direction": "FS_TO_ADO", "TitleText": "Steps", "isMultiSelectADO": "FALSE"},
    ],
    "URL": [
        {"Key": "FS_FETCH_QUERY", "Value": "status:2"},
    ],
    "ProductsFields": [
        {"ADO-Field-Key": "System.AreaPath", "ProductsDataSheetKey": "AreaPath", "Direction": "FS_TO_ADO"},
    ],
    "ProductsData": [
        {"ProductName": "Portal", "ProductVersion": 4.0, "AreaPath": "Web\\Portal",
         "IterationPath": "Web\\Sprint 12", "Region": "EMEA"},
    ],
}


def _sheets(**overrides):
    sheets = {name: list(rows) for name, rows in SHEET_ROWS.items()}
    sheets.update(overrides)
    return sheets


def test_cell_text():
    assert cell_text(None) == ""
    assert cell_text(4.0) == "4"
    assert cell_text(4.5) == "4.5"
    assert cell_text(True) == "TRUE"
    assert cell_text("  Portal ") == "Portal"


def test_build_mapping_set():
    mapping_set = build_mapping_set(_sheets())

    forward = mapping_set.fields_for(Direction.SOURCE_TO_TARGET)
    reverse = mapping_set.fields_for(Direction.TARGET_TO_SOURCE)
    assert [m.target_field for m in forward] == ["System.Title"]
    assert reverse[0].is_custom
    assert reverse[0].value_type == FieldType.TEXT

    assert mapping_set.repository_fields()[0].title_text == "Steps"
    assert mapping_set.product_fields()[0].catalog_key == "AreaPath"
    assert mapping_set.fetch_query == "status:2"


def test_catalog_lookup_uses_text_keys():
    mapping_set = build_mapping_set(_sheets())

    entry = mapping_set.product_catalog_lookup("Portal", 4)
    assert entry is not None
    assert entry.get("AreaPath") == "Web\\Portal"
    # Extra columns are kept
    assert entry.get("Region") == "EMEA"
    assert mapping_set.product_catalog_lookup("Portal", "5") is None
    assert mapping_set.product_catalog_lookup(None, "4") is None


def test_missing_sheet_fails():
    sheets = _sheets()
    del sheets["ProductsData"]

    with pytest.raises(ConfigError, match='Required sheet "ProductsData" is missing'):
        build_mapping_set(sheets)


def test_empty_sheet_fails():
    with pytest.raises(ConfigError, match="No data found in the Repo sheet"):
        build_mapping_set(_sheets(Repo=[]))


def test_invalid_direction_fails_whole_load():
    bad_row = dict(SHEET_ROWS["SingleField"][0], Direction="SIDEWAYS")

    with pytest.raises(ConfigError, match="SingleField row 2"):
        build_mapping_set(_sheets(SingleField=[bad_row]))


def test_empty_key_fails_whole_load():
    bad_row = dict(SHEET_ROWS["SingleField"][0], **{"ADO-Field-Key": ""})

    with pytest.raises(ConfigError, match="SingleField record 1 is invalid"):
        build_mapping_set(_sheets(SingleField=[bad_row]))


def test_duplicate_catalog_rows_keep_first():
    mapping_set = MappingSet.create(
        single_fields=[SingleFieldMapping("subject", "System.Title", Direction.SOURCE_TO_TARGET)],
        repository=[],
        product_field_mappings=[],
        catalog=[
            ProductCatalogEntry("Portal", "4", (("AreaPath", "First"),)),
            ProductCatalogEntry("Portal", "4", (("AreaPath", "Second"),)),
        ],
        urls=[],
    )

    assert mapping_set.product_catalog_lookup("Portal", "4").get("AreaPath") == "First"


def test_mapping_set_is_immutable():
    mapping_set = build_mapping_set(_sheets())

    with pytest.raises(AttributeError):
        mapping_set.single_fields = ()


def _write_workbook(path, sheets):
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(name)
        headers = []
        for row in rows:
            for key in row:
                if key not in headers:
                    headers.append(key)
        worksheet.append(headers)
        for row in rows:
            worksheet.append([row.get(header) for header in headers])
        # Blank rows are ignored by the loader
        worksheet.append([None] * len(headers))
    workbook.save(str(path))


def test_load_mapping_workbook(tmp_path):
    path = tmp_path / "VG-FS-ADO-Sync.xlsx"
    _write_workbook(path, SHEET_ROWS)

    mapping_set = load_mapping_workbook(path)

    assert len(mapping_set.single_fields) == 2
    assert len(mapping_set.catalog) == 1
    assert mapping_set.product_catalog_lookup("Portal", "4") is not None
    assert mapping_set.fetch_query == "status:2"


def test_load_mapping_workbook_rejects_bad_paths(tmp_path):
    with pytest.raises(ConfigError, match="Only .xlsx"):
        load_mapping_workbook(tmp_path / "mappings.csv")

    with pytest.raises(ConfigError, match="not found"):
        load_mapping_workbook(tmp_path / "missing.xlsx")
