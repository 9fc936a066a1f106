import logging
import os
from dataclasses import dataclass
from enum import Enum

from trello_exporter.constants import FileName
from trello_exporter.export.errors import ErrorHandler, ProcessingError, Severity
from trello_exporter.export.sanitizer import PathSanitizer
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.model import TrelloCard, TrelloList, LINK_CARD_ROLE

LOG = logging.getLogger(__name__)

LINK_NAME_PREFIXES = ("https---", "http---")


class CardKind(Enum):
    LINK = "link"
    REGULAR = "regular"


@dataclass(frozen=True)
class ArchiveSettings:
    split_archived: bool = False


class CardClassifier:
    def __init__(self, api: AbstractTrelloApi, error_handler: ErrorHandler):
        self._api = api
        self._error_handler = error_handler

    def classify(self, card: TrelloCard) -> CardKind:
        """
        The role marker is not part of the regular card payload, so it is fetched separately.
        If that fails the card is exported as a regular card.
        """
        try:
            with ErrorHandler.guard("get card role", f"card {card.name}", Severity.WARNING):
                role = self._api.get_card_role(card.id)
        except ProcessingError as e:
            self._error_handler.handle(e)
            return CardKind.REGULAR

        if role == LINK_CARD_ROLE:
            return CardKind.LINK
        return CardKind.REGULAR

    @staticmethod
    def card_dir(board_dir: str, trello_list: TrelloList, card: TrelloCard, settings: ArchiveSettings) -> str:
        """
        open card:                    {board}/{list}/{card}
        archived card, no split:      {board}/{list}/{card} (ARCHIVED)
        archived card, split:         {board}/ARCHIVED/{list}/{card}
        """
        list_segment = PathSanitizer.sanitize(trello_list.name)
        card_segment = PathSanitizer.sanitize(card.name)
        if not card.closed:
            return os.path.join(board_dir, list_segment, card_segment)
        if settings.split_archived:
            return os.path.join(board_dir, FileName.ARCHIVED_DIR, list_segment, card_segment)
        return os.path.join(board_dir, list_segment, card_segment + FileName.ARCHIVED_SUFFIX)

    @staticmethod
    def link_card_file(board_dir: str, trello_list: TrelloList, card: TrelloCard) -> str:
        clean_name = PathSanitizer.sanitize(card.name)
        for prefix in LINK_NAME_PREFIXES:
            clean_name = clean_name.replace(prefix, "")
        file_name = FileName.LINK_CARD_PREFIX + clean_name + FileName.MARKDOWN_EXT
        return os.path.join(board_dir, PathSanitizer.sanitize(trello_list.name), FileName.LINK_CARDS_DIR, file_name)
