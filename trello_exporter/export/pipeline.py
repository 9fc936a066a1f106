import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from trello_exporter.constants import DEFAULT_MAX_WORKERS
from trello_exporter.display.console import CliLogger
from trello_exporter.export.buffer import BufferPool
from trello_exporter.export.classifier import CardClassifier, CardKind, ArchiveSettings
from trello_exporter.export.errors import ErrorHandler, ProcessingError, Severity, CardExportException
from trello_exporter.export.renderer import CardRenderer
from trello_exporter.trello.cache import ListCache
from trello_exporter.trello.model import TrelloCard
from trello_exporter.trello.service import CardResourceFetcher

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)

ProgressCallback = Callable[[int, int], None]


class PipelineState(Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    DRAINING = "draining"
    DONE = "done"


@dataclass
class CardExportJob:
    card: TrelloCard
    board_dir: str
    list_cache: ListCache
    archive_settings: ArchiveSettings
    index: int = 0


@dataclass
class JobResult:
    card_id: str
    card_name: str
    success: bool
    kind: Optional[CardKind] = None
    cancelled: bool = False
    error: Optional[Exception] = None


@dataclass
class PipelineResult:
    results: List[JobResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> List[JobResult]:
        return [r for r in self.results if not r.success and not r.cancelled]

    @property
    def cancelled(self) -> List[JobResult]:
        return [r for r in self.results if r.cancelled]

    @property
    def succeeded(self) -> List[JobResult]:
        return [r for r in self.results if r.success]


class CardExporter:
    """
    Processes a single card end to end: list lookup, classification, comprehensive fetch and rendering.
    Called concurrently from worker threads, holds no per-card state.
    """
    def __init__(self, classifier: CardClassifier, fetcher: CardResourceFetcher, renderer: CardRenderer,
                 buffer_pool: BufferPool):
        self._classifier = classifier
        self._fetcher = fetcher
        self._renderer = renderer
        self._buffer_pool = buffer_pool

    def export(self, job: CardExportJob) -> CardKind:
        card = job.card
        with self._buffer_pool.borrow() as buf:
            trello_list = job.list_cache.get(card.list_id)
            kind = self._classifier.classify(card)
            if kind == CardKind.LINK:
                file_path = CardClassifier.link_card_file(job.board_dir, trello_list, card)
                self._renderer.render_link_card(card, file_path)
                return kind

            card_dir = CardClassifier.card_dir(job.board_dir, trello_list, card, job.archive_settings)
            full_card = self._fetcher.fetch_comprehensive(card)
            self._renderer.render(full_card, card_dir, buf)
            return kind


class CardExportPipeline:
    def __init__(self, card_exporter: CardExporter, error_handler: ErrorHandler,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 cancel_event: threading.Event = None,
                 progress_callback: ProgressCallback = None):
        if max_workers < 1:
            raise ValueError(f"max_workers must be positive, got: {max_workers}")
        self._card_exporter = card_exporter
        self._error_handler = error_handler
        self._max_workers = max_workers
        self._cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self._progress_callback = progress_callback
        self._state = PipelineState.IDLE
        self._completed = 0
        self._total = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    def cancel(self):
        LOG.warning("Cancellation requested, pending card jobs will be skipped")
        self._cancel_event.set()

    def run(self, jobs: List[CardExportJob]) -> PipelineResult:
        if self._state != PipelineState.IDLE:
            raise ValueError(f"Pipeline can only be run once, current state: {self._state}")

        result = PipelineResult()
        self._total = len(jobs)
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            self._state = PipelineState.DISPATCHING
            futures = [executor.submit(self._run_job, job) for job in jobs]
            LOG.debug("Dispatched %d card jobs to %d workers", len(futures), self._max_workers)

            self._state = PipelineState.DRAINING
            drained = set()
            try:
                for future in as_completed(futures):
                    drained.add(future)
                    result.results.append(future.result())
            except KeyboardInterrupt:
                self.cancel()
                # Started jobs finish, the rest return cancelled results
                for future in futures:
                    if future not in drained:
                        result.results.append(future.result())
        self._state = PipelineState.DONE
        return result

    def _run_job(self, job: CardExportJob) -> JobResult:
        card = job.card
        if self._cancel_event.is_set():
            job_result = JobResult(card.id, card.name, success=False, cancelled=True)
        else:
            job_result = self._export_card(job)
        self._mark_completed()
        return job_result

    def _export_card(self, job: CardExportJob) -> JobResult:
        card = job.card
        LOG.info("Processing card: %s", card.name)
        try:
            kind = self._card_exporter.export(job)
            return JobResult(card.id, card.name, success=True, kind=kind)
        except CardExportException as e:
            LOG.error("%s", e)
            return JobResult(card.id, card.name, success=False, error=e)
        except ProcessingError as e:
            self._error_handler.handle(e)
            return JobResult(card.id, card.name, success=False, error=e)
        except Exception as e:
            error = ProcessingError("export card", f"card {card.name}", Severity.CRITICAL, e)
            LOG.exception("Unexpected failure while exporting card %s", card.name)
            self._error_handler.handle(error)
            return JobResult(card.id, card.name, success=False, error=error)

    def _mark_completed(self):
        with self._lock:
            self._completed += 1
            completed = self._completed
        if self._progress_callback is None:
            return
        try:
            self._progress_callback(completed, self._total)
        except Exception:
            # The job result is still returned
            LOG.exception("Progress callback failed at %d/%d completed card jobs", completed, self._total)
