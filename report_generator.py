"""
Excel report for one sync run: a summary sheet, a details sheet with info
and warning entries, and an errors sheet.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Union

from loguru import logger
from openpyxl import Workbook

from models.utils import formatted_date, utc_timestamp
from report_manager import RunReporter

REPORT_PREFIX = "ADO-FS-SyncReport"


def _write_rows(worksheet, rows: List[Dict[str, Any]]) -> None:
    """Write dictionaries as a table; the header is the union of all keys, in first-seen order."""
    headers: List[str] = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    if not headers:
        worksheet.append(["No entries"])
        return

    worksheet.append(headers)
    for row in rows:
        worksheet.append([_cell(row.get(header)) for header in headers])


def _cell(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def generate_report_file(reporter: RunReporter, report_dir: Union[str, Path]) -> Path:
    """
    Write the run report workbook.

    Args:
        reporter: Reporter holding the run's entries
        report_dir: Directory for report files (created if missing)

    Returns:
        Path: Location of the written .xlsx file
    """
    summary = reporter.summary()
    report = reporter.full_report()

    workbook = Workbook()

    summary_sheet = workbook.active
    summary_sheet.title = "Sync Summary"
    summary_sheet.append(["Metric", "Value"])
    summary_sheet.append(["Info Count", summary["info_count"]])
    summary_sheet.append(["Warnings", summary["warning_count"]])
    summary_sheet.append(["Errors", summary["error_count"]])
    summary_sheet.append(["Sync Start Time", utc_timestamp(reporter.start_time)])
    summary_sheet.append(["Sync End Time", utc_timestamp(reporter.end_time) if reporter.end_time else ""])
    summary_sheet.append(["Generated At", utc_timestamp()])

    detail_rows = [dict(Level="INFO", **entry.to_row()) for entry in report["info"]]
    detail_rows.extend(dict(Level="WARN", **entry.to_row()) for entry in report["warnings"])
    _write_rows(workbook.create_sheet("Details"), detail_rows)

    _write_rows(workbook.create_sheet("Errors"), [entry.to_row() for entry in report["errors"]])

    os.makedirs(report_dir, exist_ok=True)
    file_path = Path(report_dir) / f"{REPORT_PREFIX}_{formatted_date()}.xlsx"
    workbook.save(str(file_path))

    logger.info("Generated report file at: {}", file_path)
    return file_path
