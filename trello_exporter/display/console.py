import enum
import logging

from rich.console import Console
from rich.theme import Theme

LOG = logging.getLogger(__name__)


class TextStyle(enum.Enum):
    INFO = ("info", "dim cyan", logging.INFO)
    SUCCESS = ("success", "dim green", logging.INFO)
    WARNING = ("warning", "yellow", logging.WARNING)
    DANGER = ("danger", "bold red", logging.ERROR)

    def __init__(self, name: str, style: str, log_level: int):
        self.style_name = name
        self.style = style
        self.log_level = log_level


CUSTOM_THEME = Theme({t.style_name: t.style for t in TextStyle})


class CliLogger(logging.Logger):
    """
    Logger that mirrors INFO records to a themed rich console.
    Console output can be switched off globally with 'set_quiet' (-qq), log handlers are not affected.
    """
    _themed_console = Console(theme=CUSTOM_THEME)
    _console: Console = None
    _quiet = False

    def __init__(self, logger):
        super().__init__(logger.name)
        self._logger: logging.Logger = logger
        if not CliLogger._console:
            CliLogger._console = Console()
        self._formatter = logging.Formatter()

    @classmethod
    def set_quiet(cls, quiet: bool):
        cls._quiet = quiet

    @classmethod
    def is_quiet(cls):
        return cls._quiet

    @property
    def console(self) -> Console:
        return CliLogger._console

    def __getattribute__(self, item):
        if item == "handlers":
            return self._logger.handlers
        return object.__getattribute__(self, item)

    def handle(self, record):
        if not self._logger.isEnabledFor(record.levelno):
            return
        self._logger.handle(record)

        if record.levelno == logging.INFO:
            formatted = self._formatter.format(record)
            # The record is already logged above, only print it here
            self.print_themed(formatted, TextStyle.INFO, suppress_logger=True)

    def print(self, obj):
        if CliLogger._quiet:
            return
        self._console.print(obj)

    def print_themed(self, text, text_style: TextStyle, suppress_logger=False):
        """
        Prints the text to the console with the appropriate style and also logs it via the logger.
        """
        if not CliLogger._quiet:
            self._themed_console.print(text, style=text_style.style_name, markup=False)
        if not suppress_logger:
            self._logger.log(text_style.log_level, text)

    def print_success(self, text):
        self.print_themed(text, TextStyle.SUCCESS)

    def print_warning(self, text):
        self.print_themed(text, TextStyle.WARNING)

    def print_error(self, text):
        # Errors always reach the console
        self._themed_console.print(text, style=TextStyle.DANGER.style_name, markup=False)
        self._logger.log(TextStyle.DANGER.log_level, text)

    def print_exception(self, show_locals: bool = False):
        self._console.print_exception(show_locals=show_locals)
