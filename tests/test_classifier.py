import os
import unittest
from unittest.mock import Mock

from tests.test_utils import TestUtils
from trello_exporter.exception import TrelloApiException
from trello_exporter.export.classifier import CardClassifier, CardKind, ArchiveSettings
from trello_exporter.export.errors import ErrorHandler, RunStatus
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.model import TrelloList

BOARD_DIR = os.path.join("root", "My Board")
TRELLO_LIST = TrelloList("list1", "To Do", "board1")


class CardClassifierTest(unittest.TestCase):
    def setUp(self):
        self.run_status = RunStatus()
        self.api = Mock(spec=AbstractTrelloApi)
        self.classifier = CardClassifier(self.api, ErrorHandler(self.run_status))
        self.card = TestUtils.create_card("Card", TRELLO_LIST.id)

    def test_link_role_is_link_card(self):
        self.api.get_card_role.return_value = "link"
        self.assertEqual(CardKind.LINK, self.classifier.classify(self.card))
        self.api.get_card_role.assert_called_once_with(self.card.id)

    def test_no_role_is_regular_card(self):
        self.api.get_card_role.return_value = None
        self.assertEqual(CardKind.REGULAR, self.classifier.classify(self.card))

    def test_other_role_is_regular_card(self):
        self.api.get_card_role.return_value = "separator"
        self.assertEqual(CardKind.REGULAR, self.classifier.classify(self.card))

    def test_role_fetch_failure_falls_back_to_regular_with_warning(self):
        self.api.get_card_role.side_effect = TrelloApiException("boom", 500)
        self.assertEqual(CardKind.REGULAR, self.classifier.classify(self.card))
        self.assertEqual(1, self.run_status.warning_count)
        self.assertFalse(self.run_status.had_errors)


class CardPathTest(unittest.TestCase):
    def test_open_card_dir(self):
        card = TestUtils.create_card("Buy milk", TRELLO_LIST.id)
        for split in (True, False):
            self.assertEqual(os.path.join(BOARD_DIR, "To Do", "Buy milk"),
                             CardClassifier.card_dir(BOARD_DIR, TRELLO_LIST, card, ArchiveSettings(split)))

    def test_archived_card_dir_without_split(self):
        card = TestUtils.create_card("Old", TRELLO_LIST.id, closed=True)
        self.assertEqual(os.path.join(BOARD_DIR, "To Do", "Old (ARCHIVED)"),
                         CardClassifier.card_dir(BOARD_DIR, TRELLO_LIST, card, ArchiveSettings(False)))

    def test_archived_card_dir_with_split(self):
        card = TestUtils.create_card("Old", TRELLO_LIST.id, closed=True)
        self.assertEqual(os.path.join(BOARD_DIR, "ARCHIVED", "To Do", "Old"),
                         CardClassifier.card_dir(BOARD_DIR, TRELLO_LIST, card, ArchiveSettings(True)))

    def test_card_and_list_names_are_sanitized(self):
        trello_list = TrelloList("l", "In/Progress", "board1")
        card = TestUtils.create_card("What? Now:", trello_list.id)
        self.assertEqual(os.path.join(BOARD_DIR, "In-Progress", "What- Now"),
                         CardClassifier.card_dir(BOARD_DIR, trello_list, card, ArchiveSettings()))

    def test_link_card_file_strips_url_scheme(self):
        card = TestUtils.create_card("https://example.com/docs", TRELLO_LIST.id)
        self.assertEqual(os.path.join(BOARD_DIR, "To Do", "Link Cards Only", "CARD - example.com-docs.md"),
                         CardClassifier.link_card_file(BOARD_DIR, TRELLO_LIST, card))

    def test_link_card_file_strips_http_scheme(self):
        card = TestUtils.create_card("http://example.com", TRELLO_LIST.id)
        self.assertEqual(os.path.join(BOARD_DIR, "To Do", "Link Cards Only", "CARD - example.com.md"),
                         CardClassifier.link_card_file(BOARD_DIR, TRELLO_LIST, card))
