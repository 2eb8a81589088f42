"""
Batch runner.

Pages through the Freshservice tickets selected by the filter expression and
processes each page concurrently, one worker per ticket up to the worker cap.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List

from loguru import logger

from adapters import SourceTicketAdapter
from models import Ticket
from sync_engine import OutcomeStatus, SyncEngine, SyncOutcome


@dataclass
class BatchResult:
    """Outcomes of one run."""
    pages: int = 0
    outcomes: List[SyncOutcome] = field(default_factory=list)

    def with_status(self, status: OutcomeStatus) -> List[SyncOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == status]

    @property
    def created(self) -> List[SyncOutcome]:
        return self.with_status(OutcomeStatus.CREATED)

    @property
    def updated(self) -> List[SyncOutcome]:
        return self.with_status(OutcomeStatus.UPDATED)

    @property
    def skipped(self) -> List[SyncOutcome]:
        return self.with_status(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> List[SyncOutcome]:
        return self.with_status(OutcomeStatus.FAILED)


class BatchRunner:
    """
    Drive the sync engine over every page of source tickets.

    Args:
        source: Freshservice adapter used for paging
        engine: Sync engine applied to each ticket
        page_size: Tickets requested per page
        max_workers: Concurrent tickets per page
    """

    def __init__(self, source: SourceTicketAdapter, engine: SyncEngine, page_size: int = 5, max_workers: int = 5):
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.source = source
        self.engine = engine
        self.page_size = page_size
        self.max_workers = max(1, max_workers)

    def run(self) -> BatchResult:
        """
        Process pages until Freshservice returns an empty page.

        A page fetch error propagates and aborts the run; ticket failures do not.
        """
        result = BatchResult()
        page = 1

        while True:
            tickets = self.source.fetch_page(page, self.page_size)
            if not tickets:
                logger.info("Page {} is empty. Stopping after {} page(s).", page, result.pages)
                break

            result.outcomes.extend(self.process_page(tickets))
            result.pages += 1
            page += 1

        logger.info(
            "Sync run completed. Created: {}, Updated: {}, Skipped: {}, Failed: {}",
            len(result.created),
            len(result.updated),
            len(result.skipped),
            len(result.failed),
        )
        return result

    def process_page(self, tickets: List[Ticket]) -> List[SyncOutcome]:
        """Process one page concurrently and wait for every ticket to finish."""
        logger.info("Processing batch of {} tickets.", len(tickets))
        workers = min(self.max_workers, len(tickets))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ticket") as executor:
            futures = [(ticket, executor.submit(self.engine.process_ticket, ticket)) for ticket in tickets]

        outcomes = []
        for ticket, future in futures:
            try:
                outcomes.append(future.result())
            except Exception as e:
                # process_ticket reports its own errors
                logger.exception("Worker for ticket {} crashed", ticket.id)
                outcomes.append(SyncOutcome.failed(ticket.id, str(e), e))
        return outcomes
