import logging
from typing import List

from trello_exporter.display.console import CliLogger
from trello_exporter.export.errors import ErrorHandler, ProcessingError, Severity
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.filter import TrelloFilters
from trello_exporter.trello.model import TrelloCard, TrelloAttachment, TrelloAction, TrelloMember, TrelloLabel, \
    TrelloChecklist, TrelloBoard, COMMENT_ACTION_TYPE
from trello_exporter.utils import LogSanitizer

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)


class TrelloOperations:
    """
    Board level reads. Failures are classified CRITICAL: without the board or its cards nothing can be exported.
    """
    def __init__(self, api: AbstractTrelloApi):
        self._api = api

    @property
    def api(self) -> AbstractTrelloApi:
        return self._api

    def get_board(self, board_id: str) -> TrelloBoard:
        with ErrorHandler.guard("get board data", f"board ID {board_id}", Severity.CRITICAL):
            return self._api.get_board(board_id)

    def get_cards(self, board: TrelloBoard, filters: TrelloFilters) -> List[TrelloCard]:
        if filters.uses_label_search:
            query = filters.label_search_query(board.id)
            CLI_LOG.info("Searching for only cards with label: %s", filters.label_name)
            LOG.debug("Querying Trello API with: %s", LogSanitizer.sanitize_for_logging(query))
            with ErrorHandler.guard("search cards by label",
                                    f"board {board.name}, label {filters.label_name}", Severity.CRITICAL):
                return self._api.search_cards(query)

        with ErrorHandler.guard("get board cards", f"board {board.name}", Severity.CRITICAL):
            return self._api.get_cards(board.id, filters.card_filter)

    def get_board_labels(self, board: TrelloBoard) -> List[TrelloLabel]:
        with ErrorHandler.guard("get label data", f"board {board.display_name}", Severity.ERROR):
            return self._api.get_board_labels(board.id)

    def get_board_members(self, board: TrelloBoard) -> List[TrelloMember]:
        with ErrorHandler.guard("get members", f"board {board.display_name}", Severity.ERROR):
            return self._api.get_board_members(board.id)


class CardResourceFetcher:
    """
    Two tier strategy: one comprehensive call per card, and for every field the
    comprehensive payload does not carry, a dedicated fallback fetch.
    Each fallback fails independently with its own ProcessingError.
    """
    def __init__(self, api: AbstractTrelloApi, error_handler: ErrorHandler):
        self._api = api
        self._error_handler = error_handler

    def fetch_comprehensive(self, card: TrelloCard) -> TrelloCard:
        try:
            with ErrorHandler.guard("get comprehensive card data", f"card {card.name}", Severity.ERROR):
                return self._api.get_card_comprehensive(card.id)
        except ProcessingError as e:
            self._error_handler.handle(e)
            LOG.warning("Falling back to individual calls for card: %s", card.name)
            return card

    def get_attachments(self, card: TrelloCard) -> List[TrelloAttachment]:
        if card.attachments is not None:
            return card.attachments
        with ErrorHandler.guard("get attachments", f"card {card.name}", Severity.ERROR):
            return self._api.get_attachments(card.id)

    def get_checklists(self, card: TrelloCard) -> List[TrelloChecklist]:
        """
        Embedded checklists are used when present, otherwise each checklist ID is fetched.
        A single failing checklist is reported and skipped.
        """
        if card.checklists is not None:
            return card.checklists

        checklists = []
        for checklist_id in card.checklist_ids:
            try:
                with ErrorHandler.guard("get checklist data", f"checklist ID {checklist_id}", Severity.ERROR):
                    checklists.append(self._api.get_checklist(checklist_id))
            except ProcessingError as e:
                self._error_handler.handle(e)
        return checklists

    def get_comments(self, card: TrelloCard) -> List[TrelloAction]:
        comments = card.comments
        if comments is not None:
            return comments
        with ErrorHandler.guard("get comments", f"card ID {card.id}", Severity.ERROR):
            return self._api.get_actions(card.id, COMMENT_ACTION_TYPE)

    def get_history(self, card: TrelloCard) -> List[TrelloAction]:
        if card.actions is not None:
            return card.actions
        with ErrorHandler.guard("get history", f"card ID {card.id}", Severity.ERROR):
            return self._api.get_actions(card.id, "all")

    def get_members(self, card: TrelloCard) -> List[TrelloMember]:
        if card.members is not None:
            return card.members
        with ErrorHandler.guard("get members", f"card ID {card.id}", Severity.ERROR):
            return self._api.get_card_members(card.id)

    def get_labels(self, card: TrelloCard) -> List[TrelloLabel]:
        if card.labels is not None:
            return card.labels
        with ErrorHandler.guard("get labels", f"card ID {card.id}", Severity.ERROR):
            return self._api.get_card_labels(card.id)
