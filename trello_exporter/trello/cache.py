import logging
from typing import Dict

from trello_exporter.display.console import CliLogger
from trello_exporter.export.errors import ErrorHandler, ProcessingError, Severity
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.model import TrelloBoard, TrelloList

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)


class ListCache:
    """
    All lists of a board, fetched once before card processing starts.
    Read-only after 'build', so workers read it without locking.
    """
    def __init__(self, api: AbstractTrelloApi, lists_by_id: Dict[str, TrelloList]):
        self._api = api
        self._by_id: Dict[str, TrelloList] = dict(lists_by_id)

    @classmethod
    def build(cls, api: AbstractTrelloApi, board: TrelloBoard, error_handler: ErrorHandler) -> 'ListCache':
        LOG.debug("Caching board lists for board: %s", board.name)
        try:
            with ErrorHandler.guard("get board lists", f"board {board.name}", Severity.ERROR):
                lists = api.get_lists(board.id)
        except ProcessingError as e:
            # Lookups fall back to individual list fetches
            error_handler.handle(e)
            return cls(api, {})

        cache = cls(api, {l.id: l for l in lists if l is not None})
        LOG.debug("Cached %d lists for board %s", len(cache), board.name)
        return cache

    def __len__(self):
        return len(self._by_id)

    def get(self, list_id: str) -> TrelloList:
        """
        Raises ProcessingError (CRITICAL) when the list is neither cached nor fetchable.
        """
        trello_list = self._by_id.get(list_id)
        if trello_list is not None:
            return trello_list

        LOG.debug("List %s is not cached, fetching it individually", list_id)
        with ErrorHandler.guard("get list data", f"list ID {list_id}", Severity.CRITICAL):
            return self._api.get_list(list_id)
