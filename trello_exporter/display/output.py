import logging
from typing import List

from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn, TimeElapsedColumn
from rich.table import Table

from trello_exporter.constants import NO_LABEL_COLOR, NO_LABEL_NAME
from trello_exporter.display.console import CliLogger
from trello_exporter.export.errors import RunStatus
from trello_exporter.trello.model import TrelloBoard, TrelloLabel

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)


class LabelsTable:
    HEADER = ["Label Name", "Label Color", "Label UID"]

    def __init__(self, board: TrelloBoard, labels: List[TrelloLabel]):
        self._board = board
        self._labels = labels

    def render(self) -> Table:
        table = Table(title=f"Labels of board {self._board.display_name}", show_lines=True)
        for col in self.HEADER:
            table.add_column(col, no_wrap=True)
        for label in self._labels:
            table.add_row(label.name or NO_LABEL_NAME, label.color or NO_LABEL_COLOR, label.id)
        return table

    def print(self):
        CLI_LOG.print(self.render())


class CardCountReport:
    def __init__(self, board: TrelloBoard, open_count: int, total_count: int):
        self.board = board
        self.open_count = open_count
        self.total_count = total_count

    @property
    def archived_count(self):
        return self.total_count - self.open_count

    def render(self) -> Table:
        table = Table(title=f"Cards of board {self.board.display_name}")
        table.add_column("Open cards", justify="right")
        table.add_column("Archived cards", justify="right")
        table.add_column("Total cards", justify="right")
        table.add_row(str(self.open_count), str(self.archived_count), str(self.total_count))
        return table

    def print(self):
        CLI_LOG.print(self.render())


class RunSummary:
    def __init__(self, run_status: RunStatus):
        self._status = run_status

    def render(self) -> Table:
        table = Table(title="Export summary")
        table.add_column("Processed boards")
        table.add_column("Failed cards", justify="right")
        table.add_column("Critical", justify="right")
        table.add_column("Errors", justify="right")
        table.add_column("Warnings", justify="right")
        table.add_row("\n".join(self._status.processed_boards) or "-",
                      str(self._status.failed_cards),
                      str(self._status.critical_count),
                      str(self._status.error_count),
                      str(self._status.warning_count))
        return table

    def print(self):
        CLI_LOG.print(self.render())
        if self._status.had_errors:
            CLI_LOG.print_warning("Export finished with errors, check the log for details")
        else:
            CLI_LOG.print_success("Export finished successfully")


class ExportProgress:
    """
    One rich progress task per board, advanced from the pipeline's completion callback.
    Disabled when console output is switched off.
    """
    def __init__(self, enabled: bool = True):
        self._enabled = enabled and not CliLogger.is_quiet()
        self._progress = Progress(SpinnerColumn(),
                                  TextColumn("[progress.description]{task.description}"),
                                  BarColumn(),
                                  MofNCompleteColumn(),
                                  TimeElapsedColumn(),
                                  console=CLI_LOG.console,
                                  disable=not self._enabled)

    def __enter__(self):
        self._progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._progress.stop()
        return False

    def callback_for_board(self, board: TrelloBoard, total: int):
        task_id = self._progress.add_task(f"Exporting {board.name}", total=total)

        def _on_completed(completed: int, _total: int):
            self._progress.update(task_id, completed=completed)
        return _on_completed
