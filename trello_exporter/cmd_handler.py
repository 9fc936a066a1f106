import logging
import threading
from typing import Iterable, List

from trello_exporter.config_parser.config import ExportConfig
from trello_exporter.display.console import CliLogger
from trello_exporter.display.output import LabelsTable, CardCountReport, RunSummary, ExportProgress
from trello_exporter.export.board import BoardExporter
from trello_exporter.export.buffer import BufferPool
from trello_exporter.export.classifier import ArchiveSettings
from trello_exporter.export.errors import ErrorHandler, RunStatus
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.filter import TrelloFilters, CardFilter
from trello_exporter.trello.service import TrelloOperations

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)


class MainCommandHandler:
    def __init__(self, config: ExportConfig, api: AbstractTrelloApi):
        self.config = config
        self._api = api
        self._trello_ops = TrelloOperations(api)
        self._cancel_event = threading.Event()

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def run(self, board_ids: Iterable[str], show_progress: bool = True) -> RunStatus:
        """
        Exports every board in order. A board that cannot be exported is reported and skipped,
        the returned RunStatus tells whether anything went wrong.
        """
        board_ids: List[str] = [b for b in board_ids if b]
        run_status = RunStatus()
        error_handler = ErrorHandler(run_status)
        filters = TrelloFilters(include_archived=self.config.include_archived, label_name=self.config.label_name)
        archive_settings = ArchiveSettings(split_archived=self.config.split_archived)

        LOG.info("Exporting %d board(s) to %s", len(board_ids), self.config.storage_path)
        with ExportProgress(enabled=show_progress) as progress:
            exporter = BoardExporter(self._api,
                                     error_handler,
                                     self.config.storage_path,
                                     filters,
                                     archive_settings,
                                     max_workers=self.config.max_workers,
                                     buffer_pool=BufferPool(),
                                     cancel_event=self._cancel_event,
                                     progress_callback_factory=progress.callback_for_board)
            for board_id in board_ids:
                if self._cancel_event.is_set():
                    CLI_LOG.print_warning(f"Cancelled, skipping board {board_id}")
                    continue
                exporter.export(board_id)

        if run_status.had_errors:
            CLI_LOG.print_warning("Errors occurred during processing, please check the logs")
        return run_status

    def print_summary(self, run_status: RunStatus):
        RunSummary(run_status).print()

    def print_labels(self, board_id: str):
        board = self._trello_ops.get_board(board_id)
        labels = self._trello_ops.get_board_labels(board)
        LabelsTable(board, labels).print()
        return labels

    def count_cards(self, board_id: str) -> CardCountReport:
        board = self._trello_ops.get_board(board_id)
        open_cards = self._api.get_cards(board.id, CardFilter.OPEN)
        all_cards = self._api.get_cards(board.id, CardFilter.ALL)
        report = CardCountReport(board, len(open_cards), len(all_cards))
        report.print()
        return report
