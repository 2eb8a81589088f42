"""
Configuration constants for the Freshservice to Azure DevOps synchronization.

Values are read from the environment (a local .env file is loaded first) so
that credentials never live in the repository.
"""

import os
from typing import List

import dotenv
from loguru import logger

dotenv.load_dotenv()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("{} is not a valid integer ('{}'). Using default {}.", name, value, default)
        return default


# Freshservice (source)
FS_DOMAIN = os.getenv("FS_DOMAIN", "")
FS_API_KEY = os.getenv("FS_API_KEY", "")
FS_CORRELATION_FIELD = os.getenv("FS_CORRELATION_FIELD", "source_control_reference")
FS_FIELD_FOR_ADO_BUG_ID = os.getenv("FS_FIELD_FOR_ADO_BUG_ID", FS_CORRELATION_FIELD)

# Azure DevOps (target)
VG_ADO_ORG_URL = os.getenv("VG_ADO_ORG_URL", "")
VG_ADO_PROJECT = os.getenv("VG_ADO_PROJECT", "")
VG_ADO_USER = os.getenv("VG_ADO_USER", "")
VG_ADO_PASS = os.getenv("VG_ADO_PASS", "")
ADO_API_VERSION = os.getenv("ADO_API_VERSION", "7.1")
ADO_WORK_ITEM_TYPE = os.getenv("ADO_WORK_ITEM_TYPE", "Bug")
ADO_REPO_FIELD_KEY = os.getenv("ADO_REPO_FIELD_KEY", "System.Description")
ADO_REQUESTER_FIELD_KEY = os.getenv("ADO_REQUESTER_FIELD_KEY", "Custom.ReqID")
ADO_RESPONDER_FIELD_KEY = os.getenv("ADO_RESPONDER_FIELD_KEY", "Custom.IMSTechnician")

# Mapping workbook and output locations
MAPPING_EXCEL_FILE = os.getenv("MAPPING_EXCEL_FILE", "VG-FS-ADO-Sync.xlsx")
DATA_DIR = os.getenv("DATA_DIR", "./data")
REPORTS_DIR = os.getenv("REPORTS_DIR", "./reports")
LOG_DIR = os.getenv("LOG_DIR", "./logs")
LOGGING_LEVEL = os.getenv("LOGGING_LEVEL", "INFO").upper()

# Scheduling and throughput
CRON_PATTERN = os.getenv("CRON_PATTERN", "*/30 * * * *")
SYNC_PAGE_SIZE = _get_int("SYNC_PAGE_SIZE", 5)
# Per-page worker cap; the page size is the default concurrency
SYNC_MAX_WORKERS = _get_int("SYNC_MAX_WORKERS", SYNC_PAGE_SIZE)
HTTP_TIMEOUT = _get_int("HTTP_TIMEOUT", 30)
VERIFY_SSL = _get_bool("VERIFY_SSL", True)

# Report e-mail
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = _get_int("SMTP_PORT", 587)
SMTP_USE_TLS = _get_bool("SMTP_USE_TLS", True)
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASSWORD = os.getenv("EMAIL_PASSWORD", "")
REPORT_EMAIL_TO = os.getenv("REPORT_EMAIL_TO", "")
REPORT_EMAIL_CC = os.getenv("REPORT_EMAIL_CC", "")
REPORT_ALERT_EMAIL = os.getenv("REPORT_ALERT_EMAIL", REPORT_EMAIL_TO)

REQUIRED_VARIABLES = [
    "FS_DOMAIN",
    "FS_API_KEY",
    "VG_ADO_ORG_URL",
    "VG_ADO_PROJECT",
    "VG_ADO_USER",
    "VG_ADO_PASS",
]


def check_environment() -> List[str]:
    """
    Report which required settings are missing.

    Only the presence of each variable is logged, never its value.

    Returns:
        list: Names of the required variables that are empty.
    """
    missing = [name for name in REQUIRED_VARIABLES if not globals().get(name)]
    if missing:
        logger.warning("Missing environment variables: {}", ", ".join(missing))
    else:
        logger.debug("All required environment variables are set.")
    return missing
