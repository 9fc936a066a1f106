import logging
import os

LOG = logging.getLogger(__name__)
PROJECT_NAME = "trello-exporter"
VERSION = "0.9.0"

# Owner read/write only
SECURE_FILE_MODE = 0o600
DEFAULT_MAX_WORKERS = 5
MAX_POOLED_BUFFER_SIZE = 64 * 1024
MAX_PATH_SEGMENT_LENGTH = 240
ACTIONS_LIMIT = 1000

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
FALLBACK_NAME_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

TRELLO_API_ROOT = "https://api.trello.com/1/"
ATTACHMENT_DOWNLOAD_URL_TMPL = "https://api.trello.com/1/cards/{card_id}/attachments/{attachment_id}/download/{file_name}"

UNKNOWN_MEMBER = "Unknown Member"
UNKNOWN_ID = "Unknown ID"
NO_LABEL_COLOR = "No Color"
NO_LABEL_NAME = "No Name"


class EnvVar:
    API_KEY = "TRELLGO_APIKEY"
    API_TOKEN = "TRELLGO_APITOK"
    API_URL = "TRELLGO_APIURL"


class FileName:
    BOARD_LABELS = "BoardLabels.md"
    BOARD_MEMBERS = "BoardMembers.md"
    BOARD_BACKGROUND_PREFIX = "BoardBackground-"
    CARD_DESCRIPTION = "CardDescription.md"
    ATTACHMENTS_DIR = "attachments"
    URL_ATTACHMENTS = "URL-Attachments.md"
    CHECKLISTS_DIR = "checklists"
    CARD_COMMENTS = "CardComments.md"
    CARD_USERS = "CardUsers.md"
    CARD_LABELS = "CardLabels.md"
    CARD_HISTORY = "CardHistory.md"
    CARD_DUE_DATE = "CardDueDate.md"
    CARD_DUE_DATE_COMPLETED = "CardDueDate (Completed).md"
    CARD_START_DATE = "CardStartDate.md"
    CARD_COVER_COLOR = "CardCoverColor.md"
    ARCHIVED_DIR = "ARCHIVED"
    ARCHIVED_SUFFIX = " (ARCHIVED)"
    COVER_SUFFIX = " (Card Cover)"
    LINK_CARDS_DIR = "Link Cards Only"
    LINK_CARD_PREFIX = "CARD - "
    MARKDOWN_EXT = ".md"


class FilePath:
    @classmethod
    def get_working_dir(cls):
        return os.getcwd()

    @classmethod
    def get_dotenv_path(cls):
        return os.path.join(cls.get_working_dir(), ".env")
