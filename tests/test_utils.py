import random
import string
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from trello_exporter.exception import TrelloApiException, TrelloNotFoundException
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.filter import CardFilter
from trello_exporter.trello.model import TrelloBoard, TrelloList, TrelloLabel, TrelloMember, TrelloCard, \
    TrelloAttachment, TrelloChecklist, TrelloAction, TrelloChecklistItem


class TestUtils:
    @staticmethod
    def generate_trello_like_id(length=8):
        charset = string.ascii_letters + string.digits   # A-Z a-z 0-9  (62 chars)
        return ''.join(random.choices(charset, k=length))

    @staticmethod
    def create_card(name, list_id, closed=False, **kwargs) -> TrelloCard:
        return TrelloCard(TestUtils.generate_trello_like_id(), name, kwargs.pop("description", ""), closed, list_id,
                          **kwargs)

    @staticmethod
    def create_full_card(card: TrelloCard, **overrides) -> TrelloCard:
        """Returns the card as the comprehensive call would, every collection is fetched."""
        values = dict(attachments=[], checklists=[], actions=[], members=[], labels=[])
        values.update(overrides)
        return TrelloCard(card.id, card.name, card.description, card.closed, card.list_id,
                          due=card.due, due_complete=card.due_complete, start=card.start, cover=card.cover,
                          checklist_ids=card.checklist_ids, **values)

    @staticmethod
    def create_checklist(name, *items) -> TrelloChecklist:
        check_items = [TrelloChecklistItem(TestUtils.generate_trello_like_id(), item_name, checked, pos)
                       for pos, (item_name, checked) in enumerate(items)]
        return TrelloChecklist(TestUtils.generate_trello_like_id(), name, None, check_items)


class FakeTrelloApi(AbstractTrelloApi):
    """
    In-memory API. Methods listed in 'failing' raise TrelloApiException,
    every call is recorded in 'calls' (method name -> list of first arguments).
    """
    def __init__(self, board: TrelloBoard, lists: List[TrelloList], cards: List[TrelloCard],
                 labels: List[TrelloLabel] = None, members: List[TrelloMember] = None):
        self.board = board
        self.lists = {l.id: l for l in lists}
        self.cards = list(cards)
        self.labels = labels or []
        self.members = members or []
        self.full_cards: Dict[str, TrelloCard] = {}
        self.card_roles: Dict[str, str] = {}
        self.checklists: Dict[str, TrelloChecklist] = {}
        self.files: Dict[str, bytes] = {}
        self.failing = set()
        self.calls = defaultdict(list)
        self._lock = threading.Lock()

    def _record(self, method, arg=None):
        with self._lock:
            self.calls[method].append(arg)
        if method in self.failing:
            raise TrelloApiException(f"{method} failed", status_code=500)

    def call_count(self, method):
        with self._lock:
            return len(self.calls[method])

    def get_board(self, board_id: str) -> TrelloBoard:
        self._record("get_board", board_id)
        if board_id != self.board.id:
            raise TrelloNotFoundException(f"Board not found: {board_id}")
        return self.board

    def get_lists(self, board_id: str) -> List[TrelloList]:
        self._record("get_lists", board_id)
        return list(self.lists.values())

    def get_list(self, list_id: str) -> TrelloList:
        self._record("get_list", list_id)
        if list_id not in self.lists:
            raise TrelloNotFoundException(f"List not found: {list_id}")
        return self.lists[list_id]

    def get_board_labels(self, board_id: str) -> List[TrelloLabel]:
        self._record("get_board_labels", board_id)
        return self.labels

    def get_board_members(self, board_id: str) -> List[TrelloMember]:
        self._record("get_board_members", board_id)
        return self.members

    def get_cards(self, board_id: str, card_filter: CardFilter) -> List[TrelloCard]:
        self._record("get_cards", card_filter)
        if card_filter == CardFilter.OPEN:
            return [c for c in self.cards if not c.closed]
        return list(self.cards)

    def search_cards(self, query: str) -> List[TrelloCard]:
        self._record("search_cards", query)
        return [c for c in self.cards if not c.closed]

    def get_card_comprehensive(self, card_id: str) -> TrelloCard:
        self._record("get_card_comprehensive", card_id)
        if card_id in self.full_cards:
            return self.full_cards[card_id]
        card = next(c for c in self.cards if c.id == card_id)
        return TestUtils.create_full_card(card)

    def get_card_role(self, card_id: str) -> Optional[str]:
        self._record("get_card_role", card_id)
        return self.card_roles.get(card_id)

    def get_attachments(self, card_id: str) -> List[TrelloAttachment]:
        self._record("get_attachments", card_id)
        return []

    def get_checklist(self, checklist_id: str) -> TrelloChecklist:
        self._record("get_checklist", checklist_id)
        if checklist_id not in self.checklists:
            raise TrelloNotFoundException(f"Checklist not found: {checklist_id}")
        return self.checklists[checklist_id]

    def get_actions(self, card_id: str, action_filter: str = "all") -> List[TrelloAction]:
        self._record("get_actions", (card_id, action_filter))
        return []

    def get_card_members(self, card_id: str) -> List[TrelloMember]:
        self._record("get_card_members", card_id)
        return []

    def get_card_labels(self, card_id: str) -> List[TrelloLabel]:
        self._record("get_card_labels", card_id)
        return []

    def download_file(self, url: str) -> bytes:
        self._record("download_file", url)
        return self.files.get(url, b"")

    def download_file_authenticated(self, url: str) -> bytes:
        self._record("download_file_authenticated", url)
        return self.files.get(url, b"")
