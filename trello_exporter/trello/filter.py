import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from trello_exporter.exception import TrelloConfigException

LOG = logging.getLogger(__name__)


class CardFilter(Enum):
    ALL = "all"
    OPEN = "open"


@dataclass(frozen=True)
class TrelloFilters:
    """
    'label_name' is matched by NAME through the Trello search API, not by label ID.
    Search only returns open cards, so it cannot be combined with archived cards.
    """
    include_archived: bool = False
    label_name: Optional[str] = None

    def __post_init__(self):
        if self.label_name and self.include_archived:
            raise TrelloConfigException("Label filter cannot be combined with including archived cards")

    @property
    def card_filter(self) -> CardFilter:
        return CardFilter.ALL if self.include_archived else CardFilter.OPEN

    @property
    def uses_label_search(self) -> bool:
        return bool(self.label_name)

    def label_search_query(self, board_id: str) -> str:
        return f'board:{board_id} label:"{self.label_name}" is:open'

    @classmethod
    def create_default(cls):
        return cls()
