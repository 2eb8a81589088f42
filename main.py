"""
Freshservice to Azure DevOps Sync Scheduler

Entry point of the synchronization job. Each run loads the mapping workbook,
pages through the filtered Freshservice tickets, creates or refreshes the
linked Azure DevOps work items, and e-mails an Excel report of the run.
"""

import argparse
import os
import sys
import threading
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

import constants
from batch_runner import BatchResult, BatchRunner
from devops_client import AzureDevOpsClient
from errors import ConfigError
from freshservice_client import FreshserviceClient
from mapping_loader import load_mapping_workbook
from report_emailer import ReportEmailer
from report_generator import generate_report_file
from report_manager import RunReporter
from sync_engine import SyncEngine, SyncSettings

# Held for the duration of a run; a trigger that cannot take it is skipped
_run_lock = threading.Lock()


def configure_logging(log_dir: str = constants.LOG_DIR, level: str = constants.LOGGING_LEVEL) -> None:
    """Configure loguru with a rotating run log, an error log and console output."""
    os.makedirs(log_dir, exist_ok=True)
    logger.remove()  # Remove default handler
    # File Logging
    logger.add(
        os.path.join(log_dir, "sync.log"),
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} - {level} - {thread.name} - {message}",
        rotation="10 MB",
        retention="30 days",
        enqueue=True,
    )
    # Error Logging
    logger.add(
        os.path.join(log_dir, "error.log"),
        level="ERROR",
        format="{time:YYYY-MM-DD HH:mm:ss} - {level} - {message}",
        rotation="10 MB",
        retention="30 days",
        backtrace=True,
        enqueue=True,
    )
    # Console Logging
    logger.add(sys.stderr, level=level, colorize=True)


def build_emailer() -> ReportEmailer:
    return ReportEmailer(
        host=constants.SMTP_HOST,
        port=constants.SMTP_PORT,
        user=constants.EMAIL_USER,
        password=constants.EMAIL_PASSWORD,
        cc=constants.REPORT_EMAIL_CC,
        use_tls=constants.SMTP_USE_TLS,
    )


def mapping_file_path() -> Path:
    return Path(constants.DATA_DIR) / constants.MAPPING_EXCEL_FILE


def execute_run(reporter: RunReporter) -> BatchResult:
    """
    One synchronization run.

    Raises:
        ConfigError: Mapping workbook or required settings are invalid
        RemoteError: A page of tickets could not be fetched
    """
    mappings = load_mapping_workbook(mapping_file_path())

    fetch_query = mappings.fetch_query
    if not fetch_query:
        raise ConfigError("No FS_FETCH_QUERY entry in the URL sheet of the mapping workbook.")
    logger.info("Fetch query set to: {}", fetch_query)

    missing = constants.check_environment()
    if missing:
        raise ConfigError(f"Missing environment variables: {', '.join(missing)}")

    source = FreshserviceClient(
        domain=constants.FS_DOMAIN,
        api_key=constants.FS_API_KEY,
        fetch_query=fetch_query,
        timeout=constants.HTTP_TIMEOUT,
        verify_ssl=constants.VERIFY_SSL,
    )
    target = AzureDevOpsClient(
        org_url=constants.VG_ADO_ORG_URL,
        project=constants.VG_ADO_PROJECT,
        user=constants.VG_ADO_USER,
        password=constants.VG_ADO_PASS,
        work_item_type=constants.ADO_WORK_ITEM_TYPE,
        api_version=constants.ADO_API_VERSION,
        timeout=constants.HTTP_TIMEOUT,
        verify_ssl=constants.VERIFY_SSL,
    )

    settings = SyncSettings.from_constants()
    engine = SyncEngine(source, target, mappings, reporter, settings)
    runner = BatchRunner(source, engine, page_size=settings.page_size, max_workers=settings.max_workers)
    return runner.run()


def run_sync_job(emailer: Optional[ReportEmailer] = None) -> Optional[BatchResult]:
    """
    Supervised sync run, as triggered by the scheduler.

    Skips when a previous run is still active. Run-level failures are
    reported once and sent to the alert address; the report is always
    written and e-mailed.

    Returns:
        BatchResult of the run, or None if the run was skipped or aborted
    """
    if not _run_lock.acquire(blocking=False):
        logger.warning("Previous sync run is still in progress. Skipping this trigger.")
        return None

    emailer = emailer or build_emailer()
    reporter = RunReporter()
    result = None

    try:
        logger.info("Scheduler triggered: Running FS <-> ADO Sync Job")
        reporter.mark_start()

        try:
            result = execute_run(reporter)
            reporter.record_info("MAIN", "Scheduler completed successfully.")
        except ConfigError as e:
            logger.error("Configuration error, run aborted: {}", e)
            reporter.record_error("START_SCHEDULER", f"Configuration error: {e}", {"type": "ConfigError"})
            _send_alert(emailer, e)
        except Exception as e:
            logger.exception("Sync run aborted")
            reporter.record_error("START_SCHEDULER", f"Error in sync run: {e}", {"type": type(e).__name__})
            _send_alert(emailer, e)

        reporter.mark_end()
        summary = reporter.summary()
        logger.info(
            "Sync Summary: {} info, {} warnings, {} errors.",
            summary["info_count"],
            summary["warning_count"],
            summary["error_count"],
        )
        _deliver_report(emailer, reporter)
        return result

    finally:
        reporter.clear()
        _run_lock.release()


def _deliver_report(emailer: ReportEmailer, reporter: RunReporter) -> None:
    try:
        report_file = generate_report_file(reporter, constants.REPORTS_DIR)
        emailer.send_report_email(constants.REPORT_EMAIL_TO, report_file)
    except Exception as e:
        logger.exception("Failed to generate or send the sync report")
        _send_alert(emailer, e)


def _send_alert(emailer: ReportEmailer, error: BaseException) -> None:
    try:
        emailer.send_error_report(constants.REPORT_ALERT_EMAIL, error)
    except Exception as e:
        logger.error("Failed to send error report e-mail: {}", e)


def start_scheduler(cron_pattern: str = constants.CRON_PATTERN) -> None:
    """Run the sync job on a cron schedule until interrupted."""
    scheduler = BlockingScheduler()
    scheduler.add_job(
        run_sync_job,
        trigger=CronTrigger.from_crontab(cron_pattern),
        id="fs_ado_sync",
        name="Freshservice to Azure DevOps sync",
        max_instances=1,
        coalesce=True,
    )
    logger.info("Scheduler initialized with cron pattern: {}", cron_pattern)

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped.")


def main(argv=None) -> None:
    """
    Main entry point for the Freshservice to Azure DevOps sync.

    Runs once with --once, otherwise starts the cron scheduler.
    """
    parser = argparse.ArgumentParser(description="Freshservice to Azure DevOps sync")
    parser.add_argument("--once", action="store_true", help="run a single sync and exit")
    parser.add_argument("--cron", default=constants.CRON_PATTERN, help="cron pattern for scheduled runs")
    args = parser.parse_args(argv)

    configure_logging()
    logger.info("Starting Freshservice <-> Azure DevOps Sync...")
    constants.check_environment()

    if args.once:
        run_sync_job()
    else:
        start_scheduler(args.cron)


if __name__ == "__main__":
    main()
