import logging
import re

from trello_exporter.constants import MAX_PATH_SEGMENT_LENGTH, FALLBACK_NAME_TIMESTAMP_FORMAT
from trello_exporter.utils import DateUtils

LOG = logging.getLogger(__name__)

# Characters illegal on Windows and Linux filesystems, plus control characters
ILLEGAL_CHARS_REGEX = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
REPLACEMENT = "-"
TRIM_CHARS = " ._-"
FALLBACK_NAME_PREFIX = "Board-Was-Illegal-Characters-"


class PathSanitizer:
    @staticmethod
    def sanitize(name: str) -> str:
        """
        Returns a name usable as a single directory or file name segment.
        The result is never empty, never hidden and at most 240 characters long,
        leaving room for suffixes like ' (ARCHIVED)'.
        """
        cleaned = ILLEGAL_CHARS_REGEX.sub(REPLACEMENT, name or "")
        cleaned = PathSanitizer._trim(cleaned)

        if not cleaned:
            LOG.error("Requested path name '%s' is empty after sanitization", name)
            cleaned = FALLBACK_NAME_PREFIX + DateUtils.now_formatted(FALLBACK_NAME_TIMESTAMP_FORMAT)
            LOG.warning("Using fallback name: %s", cleaned)

        if len(cleaned) > MAX_PATH_SEGMENT_LENGTH:
            cleaned = PathSanitizer._trim(cleaned[:MAX_PATH_SEGMENT_LENGTH])
        return cleaned

    @staticmethod
    def _trim(value: str) -> str:
        # str.strip() also removes unicode whitespace, which can hide separators
        previous = None
        while previous != value:
            previous = value
            value = value.strip().strip(TRIM_CHARS)
        return value
