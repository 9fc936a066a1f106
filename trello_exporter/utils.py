import datetime
import logging
import os
import re
import sys
from copy import copy
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Optional

from pythoncommons.logging_setup import DEFAULT_FORMAT

from trello_exporter.constants import SECURE_FILE_MODE, TIMESTAMP_FORMAT

LOG = logging.getLogger(__name__)


class DateUtils:
    @classmethod
    def now(cls):
        return datetime.datetime.now()

    @classmethod
    def now_formatted(cls, fmt):
        return DateUtils.now().strftime(fmt)

    @staticmethod
    def parse_trello_date(value: Optional[str]) -> Optional[datetime.datetime]:
        """
        Trello sends ISO-8601 timestamps with a 'Z' suffix, e.g. 2023-05-02T19:23:15.431Z
        """
        if not value:
            return None
        try:
            return datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            LOG.warning("Unparseable date value: %s", value)
            return None

    @staticmethod
    def format_timestamp(value: Optional[datetime.datetime], fmt=TIMESTAMP_FORMAT) -> str:
        if value is None:
            return ""
        return value.strftime(fmt)


class SecureFileUtils:
    @staticmethod
    def write_secure_file(file_path: str, data):
        """
        Writes (truncates) the file with owner-only permissions.
        Accepts str or bytes, None writes an empty file.
        """
        if data is None:
            data = b""
        elif isinstance(data, str):
            data = data.encode("utf-8")
        fd = os.open(file_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SECURE_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        return file_path


class LogSanitizer:
    _SECRET_PARAM_REGEX = re.compile(r"((?:key|token)=)[^&\s]+", re.IGNORECASE)

    @classmethod
    def sanitize_for_logging(cls, url: str) -> str:
        if not url:
            return url
        return cls._SECRET_PARAM_REGEX.sub(r"\1***", url)


class LoggingUtils:
    @staticmethod
    def create_file_handler(log_file_path: str, level: int):
        log_dir = os.path.dirname(os.path.abspath(log_file_path))
        os.makedirs(log_dir, exist_ok=True)
        fh = TimedRotatingFileHandler(log_file_path, when="midnight")
        fh.suffix = "%Y_%m_%d.log"
        fh.setLevel(level)
        return fh

    @staticmethod
    def configure_logging(level: int, log_file: Optional[str] = None, quiet: bool = False):
        root_logger = logging.getLogger()
        handlers = copy(root_logger.handlers)
        if not handlers and not quiet:
            handlers.append(logging.StreamHandler(sys.stderr))

        if log_file:
            file_handler = LoggingUtils.create_file_handler(log_file, level)
            LOG.info("Logging to file: %s", file_handler.baseFilename)
            handlers.append(file_handler)

        logging.basicConfig(force=True, format=DEFAULT_FORMAT, level=level, handlers=handlers)
        if quiet:
            LoggingUtils.remove_console_handler(logging.getLogger())

    @staticmethod
    def remove_console_handler(logger):
        filtered_handlers = list(
            filter(lambda h: isinstance(h, logging.StreamHandler) and
                             not isinstance(h, logging.FileHandler) and
                             h.stream in (sys.stdout, sys.stderr),
                   logger.handlers))

        for handler in filtered_handlers:
            logger.removeHandler(handler)


class ObjectUtils:
    @staticmethod
    def type_check_strict_bool(val: Any):
        if isinstance(val, bool):
            return val
        if val not in ("True", "False", "true", "false"):
            raise ValueError()
        # WARNING: bool("False") returns True, so bool(val) won't work
        string_to_bool = {"true": True, "false": False}
        return string_to_bool[val.lower()]

    @staticmethod
    def type_check_strict_str(val: Any):
        if not isinstance(val, str) or not val:
            raise ValueError()
        return str(val)

    @staticmethod
    def type_check_optional_str(val: Any):
        if val is None:
            return None
        if not isinstance(val, str):
            LOG.warning("Value of '%s' is not an instance of str, converting to str anyway", val)
        return str(val)

    @staticmethod
    def type_check_positive_int(val: Any):
        if isinstance(val, bool):
            raise ValueError()
        int_val = int(val)
        if int_val <= 0:
            raise ValueError()
        return int_val
