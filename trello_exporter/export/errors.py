import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from trello_exporter.display.console import CliLogger
from trello_exporter.exception import TrelloException

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)


class Severity(Enum):
    # Expected absence or recoverable failure, run status untouched
    WARNING = "warning"
    # A sub-resource of one card failed, counted in the error tally
    ERROR = "error"
    # Surfaced prominently, run is reported as degraded
    CRITICAL = "critical"


class ProcessingError(TrelloException):
    def __init__(self, operation: str, context: str, severity: Severity, cause: Optional[BaseException] = None):
        self.operation = operation
        self.context = context
        self.severity = severity
        self.cause = cause
        super().__init__(self._format())

    def _format(self):
        msg = f"Failed to {self.operation} ({self.context})"
        if self.cause is not None:
            msg += f": {self.cause}"
        return msg

    @property
    def is_critical(self):
        return self.severity == Severity.CRITICAL


class CardExportException(TrelloException):
    def __init__(self, card_name: str, errors: List[ProcessingError]):
        self.card_name = card_name
        details = "; ".join(str(e) for e in errors)
        super().__init__(f"Card '{card_name}' exported with {len(errors)} critical error(s): {details}", errors)


class BoardExportAborted(TrelloException):
    def __init__(self, board_name: str, error: ProcessingError):
        self.board_name = board_name
        self.error = error
        super().__init__(f"Export of board '{board_name}' aborted: {error}")


@dataclass
class RunStatus:
    processed_boards: List[str] = field(default_factory=list)
    critical_count: int = 0
    error_count: int = 0
    warning_count: int = 0
    failed_cards: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def had_errors(self) -> bool:
        with self._lock:
            return self.critical_count > 0 or self.failed_cards > 0

    def record(self, severity: Severity):
        with self._lock:
            if severity == Severity.WARNING:
                self.warning_count += 1
            elif severity == Severity.ERROR:
                self.error_count += 1
            elif severity == Severity.CRITICAL:
                self.critical_count += 1
            else:
                raise ValueError(f"Unknown severity: {severity}")

    def add_failed_cards(self, count: int):
        with self._lock:
            self.failed_cards += count

    def add_processed_board(self, board_display_name: str):
        with self._lock:
            self.processed_boards.append(board_display_name)


class ErrorHandler:
    def __init__(self, run_status: RunStatus):
        self._run_status = run_status

    @property
    def run_status(self) -> RunStatus:
        return self._run_status

    def handle(self, error: ProcessingError) -> ProcessingError:
        severity = error.severity
        if severity == Severity.WARNING:
            LOG.warning("%s", error)
        elif severity == Severity.ERROR:
            LOG.error("%s", error)
        elif severity == Severity.CRITICAL:
            CLI_LOG.print_error(f"CRITICAL - {error}")
        else:
            raise ValueError(f"Unknown severity: {severity}")
        self._run_status.record(severity)
        return error

    @staticmethod
    @contextmanager
    def guard(operation: str, context: str, severity: Severity):
        """
        Classifies any exception raised in the block as a ProcessingError.
        Already classified errors pass through unchanged.
        """
        try:
            yield
        except ProcessingError:
            raise
        except Exception as e:
            raise ProcessingError(operation, context, severity, e) from e
