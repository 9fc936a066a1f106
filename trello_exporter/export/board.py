import logging
import os
import threading
from typing import List, Optional
from urllib.parse import urlparse

from pythoncommons.file_utils import FileUtils
from tabulate import tabulate

from trello_exporter.constants import FileName, NO_LABEL_COLOR, NO_LABEL_NAME, DEFAULT_MAX_WORKERS
from trello_exporter.display.console import CliLogger
from trello_exporter.export.buffer import BufferPool
from trello_exporter.export.classifier import CardClassifier, ArchiveSettings
from trello_exporter.export.errors import ErrorHandler, ProcessingError, Severity, BoardExportAborted
from trello_exporter.export.pipeline import CardExportPipeline, CardExporter, CardExportJob, ProgressCallback, \
    PipelineResult
from trello_exporter.export.renderer import CardRenderer
from trello_exporter.export.sanitizer import PathSanitizer
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.cache import ListCache
from trello_exporter.trello.filter import TrelloFilters
from trello_exporter.trello.model import TrelloBoard, TrelloLabel, TrelloMember
from trello_exporter.trello.service import TrelloOperations, CardResourceFetcher
from trello_exporter.utils import SecureFileUtils, LogSanitizer

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)

LABEL_TABLE_HEADER = ["Label Name", "Label Color", "Label UID"]


class BoardExporter:
    def __init__(self, api: AbstractTrelloApi,
                 error_handler: ErrorHandler,
                 storage_root: str,
                 filters: TrelloFilters,
                 archive_settings: ArchiveSettings,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 buffer_pool: BufferPool = None,
                 cancel_event: threading.Event = None,
                 progress_callback_factory=None):
        self._api = api
        self._ops = TrelloOperations(api)
        self._error_handler = error_handler
        self._storage_root = storage_root
        self._filters = filters
        self._archive_settings = archive_settings
        self._max_workers = max_workers
        self._buffer_pool = buffer_pool if buffer_pool is not None else BufferPool()
        self._cancel_event = cancel_event if cancel_event is not None else threading.Event()
        # Called with (board, card_count), returns the progress callback of that board's pipeline
        self._progress_callback_factory = progress_callback_factory

        fetcher = CardResourceFetcher(api, error_handler)
        self._card_exporter = CardExporter(CardClassifier(api, error_handler),
                                           fetcher,
                                           CardRenderer(api, fetcher, error_handler),
                                           self._buffer_pool)

    @property
    def run_status(self):
        return self._error_handler.run_status

    def export(self, board_id: str) -> Optional[PipelineResult]:
        """
        Exports a single board. Board level CRITICAL failures are handled and reported,
        in that case None is returned and the caller continues with the next board.
        """
        try:
            return self._export(board_id)
        except BoardExportAborted as e:
            self._error_handler.handle(e.error)
            LOG.error("%s", e)
            return None

    def _export(self, board_id: str) -> PipelineResult:
        board = self._abort_on_error(board_id, lambda: self._ops.get_board(board_id))
        CLI_LOG.info("Processing board: %s", board.display_name)

        board_dir = os.path.join(self._storage_root, PathSanitizer.sanitize(board.name))
        self._abort_on_error(board.name, lambda: self._create_board_dir(board_dir))
        self.run_status.add_processed_board(board.display_name)

        self._run_non_fatal(lambda: self._download_background(board, board_dir))
        self._run_non_fatal(lambda: self._write_labels(board, board_dir))
        self._run_non_fatal(lambda: self._write_members(board, board_dir))

        cards = self._abort_on_error(board.name, lambda: self._ops.get_cards(board, self._filters))
        if not cards:
            error = ProcessingError("find cards", f"board {board.display_name}, no cards matched", Severity.CRITICAL)
            raise BoardExportAborted(board.name, error)
        CLI_LOG.info("Found %d cards on board %s", len(cards), board.name)

        list_cache = ListCache.build(self._api, board, self._error_handler)
        jobs = [CardExportJob(card, board_dir, list_cache, self._archive_settings, idx)
                for idx, card in enumerate(cards)]
        progress_callback: Optional[ProgressCallback] = None
        if self._progress_callback_factory is not None:
            progress_callback = self._progress_callback_factory(board, len(jobs))

        pipeline = CardExportPipeline(self._card_exporter, self._error_handler,
                                      max_workers=self._max_workers,
                                      cancel_event=self._cancel_event,
                                      progress_callback=progress_callback)
        result = pipeline.run(jobs)
        self._report(board, result)
        return result

    def _report(self, board: TrelloBoard, result: PipelineResult):
        failed = len(result.failed)
        if failed > 0:
            self.run_status.add_failed_cards(failed)
            CLI_LOG.print_warning(f"Completed with {failed} errors out of {result.total} cards "
                                  f"on board {board.display_name}")
        else:
            CLI_LOG.info("Successfully processed all %d cards on board %s", result.total, board.display_name)
        if result.cancelled:
            CLI_LOG.print_warning(f"Skipped {len(result.cancelled)} cards of board {board.display_name} "
                                  f"due to cancellation")

    @staticmethod
    def _abort_on_error(context: str, func):
        try:
            return func()
        except ProcessingError as e:
            raise BoardExportAborted(context, e) from e

    def _run_non_fatal(self, func):
        try:
            func()
        except ProcessingError as e:
            if e.is_critical:
                raise
            self._error_handler.handle(e)

    @staticmethod
    def _create_board_dir(board_dir: str):
        with ErrorHandler.guard("create board directory", board_dir, Severity.CRITICAL):
            FileUtils.ensure_dir_created(os.path.dirname(board_dir) or ".")
            FileUtils.ensure_dir_created(board_dir)

    def _download_background(self, board: TrelloBoard, board_dir: str):
        if not board.background_image:
            LOG.debug("Board %s has no background image", board.name)
            return
        file_name = os.path.basename(urlparse(board.background_image).path)
        file_path = os.path.join(board_dir, FileName.BOARD_BACKGROUND_PREFIX + PathSanitizer.sanitize(file_name))
        LOG.info("Downloading board background from %s",
                 LogSanitizer.sanitize_for_logging(board.background_image))
        with ErrorHandler.guard("download board background", f"board {board.display_name}", Severity.ERROR):
            data = self._api.download_file(board.background_image)
            SecureFileUtils.write_secure_file(file_path, data)

    def _write_labels(self, board: TrelloBoard, board_dir: str):
        labels = self._ops.get_board_labels(board)
        table = self.render_labels_table(labels)
        with ErrorHandler.guard("write board labels", f"board {board.display_name}", Severity.ERROR):
            SecureFileUtils.write_secure_file(os.path.join(board_dir, FileName.BOARD_LABELS), table)

    def _write_members(self, board: TrelloBoard, board_dir: str):
        members = self._ops.get_board_members(board)
        content = self.render_members(members)
        with ErrorHandler.guard("write board members", f"board {board.display_name}", Severity.ERROR):
            SecureFileUtils.write_secure_file(os.path.join(board_dir, FileName.BOARD_MEMBERS), content)

    @staticmethod
    def render_labels_table(labels: List[TrelloLabel]) -> str:
        rows = [[label.name or NO_LABEL_NAME, label.color or NO_LABEL_COLOR, label.id] for label in labels]
        return tabulate(rows, headers=LABEL_TABLE_HEADER, tablefmt="github") + "\n"

    @staticmethod
    def render_members(members: List[TrelloMember]) -> str:
        return "".join(f"**{m.full_name}** ({m.id})\n" for m in members)
