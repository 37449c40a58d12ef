"""Orphan recovery sweep.

Finds documents stuck between stages (a lost event, a crash mid-stage) and
re-raises the event that should have moved them on.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .config import SweepConfig
from .dispatcher import Dispatcher
from .domain.models import Document, utcnow
from .events import Event, ExtractionCompleted, PartnerMatchCompleted, StageFailed
from .ports.store import StorePort

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    partner: list[str] = field(default_factory=list)
    transaction: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.partner) + len(self.transaction)


def is_recoverable(document: Document) -> bool:
    return not document.deleted and not document.extraction_error and not document.not_invoice


class OrphanSweep:
    """One scan per stage, oldest stalled documents first."""

    def __init__(self, store: StorePort, dispatcher: Dispatcher, config: SweepConfig | None = None) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.config = config or SweepConfig()

    def run_once(self, now: datetime | None = None) -> SweepResult:
        cutoff = (now or utcnow()) - timedelta(seconds=self.config.staleness)
        result = SweepResult()
        self._scan("partner", cutoff, ExtractionCompleted, result.partner, result)
        self._scan("transaction", cutoff, PartnerMatchCompleted, result.transaction, result)

        if result.total or result.errors:
            logger.info(
                f"Sweep: {len(result.partner)} partner, {len(result.transaction)} transaction, "
                f"{len(result.errors)} errors"
            )
        return result

    def _scan(
        self,
        stage: str,
        cutoff: datetime,
        event_type: type[ExtractionCompleted] | type[PartnerMatchCompleted],
        processed: list[str],
        result: SweepResult,
    ) -> None:
        # Over-fetch so skipped documents don't starve the batch
        candidates = self.store.stalled_documents(stage, cutoff, self.config.batch_size * 2)
        documents = [d for d in candidates if is_recoverable(d)][: self.config.batch_size]

        for document in documents:
            event: Event = event_type(document.id)
            logger.info(f"Recovering {document.id}: {stage} stage stalled since {document.updated_at}")
            failures: list[str] = []
            try:
                handled = self.dispatcher.process(event, errors=failures)
            except Exception as e:
                logger.exception(f"Recovery failed for {document.id}")
                result.errors.append(f"{document.id}: {e}")
                continue

            failures.extend(f"{f.stage} stage: {f.error}" for f in handled if isinstance(f, StageFailed))
            if failures:
                logger.warning(f"Recovery of {document.id} failed: {'; '.join(failures)}")
                result.errors.extend(f"{document.id}: {failure}" for failure in failures)
            else:
                processed.append(document.id)


def run_sweeper(sweep: OrphanSweep, stop: threading.Event | None = None) -> None:
    """Run the sweep every ``interval`` seconds until stopped."""
    stop = stop or threading.Event()
    logger.info(f"Sweeping every {sweep.config.interval}s (staleness {sweep.config.staleness}s)")

    try:
        while not stop.is_set():
            try:
                sweep.run_once()
            except Exception:
                logger.exception("Sweep failed")
            stop.wait(timeout=sweep.config.interval)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        stop.set()
