import datetime
import os
import stat
import tempfile
import unittest
from unittest.mock import Mock, patch

from tests.test_utils import TestUtils
from trello_exporter.exception import TrelloApiException
from trello_exporter.export.buffer import MarkdownBuffer
from trello_exporter.export.errors import ErrorHandler, RunStatus, CardExportException
from trello_exporter.export.renderer import CardRenderer
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.model import TrelloAttachment, TrelloAction, TrelloMember, TrelloLabel, TrelloCover
from trello_exporter.trello.service import CardResourceFetcher
from trello_exporter.utils import SecureFileUtils


def read(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


class CardRendererTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.card_dir = os.path.join(self._tmp.name, "Board", "To Do", "Card")
        self.run_status = RunStatus()
        self.error_handler = ErrorHandler(self.run_status)
        self.api = Mock(spec=AbstractTrelloApi)
        self.api.download_file_authenticated.return_value = b"\x89PNG"
        self.renderer = CardRenderer(self.api, CardResourceFetcher(self.api, self.error_handler), self.error_handler)
        self.card = TestUtils.create_card("Card", "list1", description="Some **markdown**")

    def tearDown(self):
        self._tmp.cleanup()

    def _path(self, *parts):
        return os.path.join(self.card_dir, *parts)

    def _render(self, card):
        return self.renderer.render(card, self.card_dir, MarkdownBuffer())

    def test_card_without_data_produces_empty_files(self):
        card = TestUtils.create_full_card(self.card)
        errors = self._render(card)

        self.assertEqual([], errors)
        self.assertEqual("Some **markdown**", read(self._path("CardDescription.md")))
        self.assertTrue(os.path.isdir(self._path("attachments")))
        self.assertTrue(os.path.isdir(self._path("checklists")))
        self.assertEqual("", read(self._path("attachments", "URL-Attachments.md")))
        for file_name in ["CardComments.md", "CardUsers.md", "CardLabels.md", "CardHistory.md",
                          "CardDueDate.md", "CardStartDate.md"]:
            self.assertEqual("", read(self._path(file_name)), msg=file_name)
        self.assertFalse(os.path.exists(self._path("CardCoverColor.md")))

    def test_attachments(self):
        upload = TrelloAttachment("att1", "photo.png", "https://trello.com/1/cards/x/attachments/att1/download/photo.png",
                                  True, "photo.png")
        cover = TrelloAttachment("att2", "cover.jpg", "https://trello.com/cover.jpg", True, "cover.jpg")
        link = TrelloAttachment("att3", "docs", "https://example.com/docs", False)
        self.card.cover = TrelloCover(attachment_id="att2")
        card = TestUtils.create_full_card(self.card, attachments=[upload, cover, link])

        self._render(card)

        self.assertEqual(b"\x89PNG", open(self._path("attachments", "photo.png"), "rb").read())
        self.assertTrue(os.path.exists(self._path("attachments", "cover.jpg (Card Cover)")))
        self.assertEqual("https://example.com/docs\n", read(self._path("attachments", "URL-Attachments.md")))
        self.api.download_file_authenticated.assert_any_call(
            f"https://api.trello.com/1/cards/{card.id}/attachments/att1/download/photo.png")
        self.assertEqual(2, self.api.download_file_authenticated.call_count)

    def test_failed_download_does_not_stop_other_attachments(self):
        first = TrelloAttachment("att1", "a.png", "u1", True, "a.png")
        second = TrelloAttachment("att2", "b.png", "u2", True, "b.png")
        self.api.download_file_authenticated.side_effect = [TrelloApiException("403", 403), b"data"]
        card = TestUtils.create_full_card(self.card, attachments=[first, second])

        self._render(card)

        self.assertFalse(os.path.exists(self._path("attachments", "a.png")))
        self.assertTrue(os.path.exists(self._path("attachments", "b.png")))
        self.assertEqual(1, self.run_status.error_count)
        self.assertFalse(self.run_status.had_errors)

    def test_checklists_with_name_collision(self):
        first = TestUtils.create_checklist("Tasks", ("Write code", True), ("Test code", False))
        second = TestUtils.create_checklist("Tasks", ("Ship", False))
        other = TestUtils.create_checklist("Other")
        card = TestUtils.create_full_card(self.card, checklists=[first, second, other])

        self._render(card)

        self.assertEqual("- [x] Write code\n- [ ] Test code\n", read(self._path("checklists", "Tasks.md")))
        self.assertEqual("- [ ] Ship\n", read(self._path("checklists", "Tasks 1.md")))
        self.assertEqual("", read(self._path("checklists", "Other.md")))

    def test_checklist_collision_skips_names_already_taken(self):
        first = TestUtils.create_checklist("Tasks", ("First", False))
        numbered = TestUtils.create_checklist("Tasks 1", ("Numbered", False))
        duplicate = TestUtils.create_checklist("Tasks", ("Duplicate", False))
        card = TestUtils.create_full_card(self.card, checklists=[first, numbered, duplicate])

        self._render(card)

        self.assertEqual(["Tasks 1.md", "Tasks 2.md", "Tasks.md"], sorted(os.listdir(self._path("checklists"))))
        self.assertEqual("- [ ] First\n", read(self._path("checklists", "Tasks.md")))
        self.assertEqual("- [ ] Numbered\n", read(self._path("checklists", "Tasks 1.md")))
        self.assertEqual("- [ ] Duplicate\n", read(self._path("checklists", "Tasks 2.md")))

    def test_comments_and_history(self):
        date = datetime.datetime(2023, 5, 2, 19, 23, 15, tzinfo=datetime.timezone.utc)
        comment = TrelloAction("a1", "commentCard", date, "Alice", "Looks good")
        anonymous = TrelloAction("a2", "commentCard", date, None, "Who am I")
        move = TrelloAction("a3", "updateCard", date, "Bob", "")
        card = TestUtils.create_full_card(self.card, actions=[comment, anonymous, move])

        self._render(card)

        self.assertEqual("**Alice** (2023-05-02 19:23:15): Looks good\n"
                         "**Unknown Member** (2023-05-02 19:23:15): Who am I\n",
                         read(self._path("CardComments.md")))
        self.assertEqual("**commentCard** (2023-05-02 19:23:15): Alice - Looks good\n"
                         "**commentCard** (2023-05-02 19:23:15): Unknown Member - Who am I\n"
                         "**updateCard** (2023-05-02 19:23:15): Bob - \n",
                         read(self._path("CardHistory.md")))

    def test_users_and_labels(self):
        members = [TrelloMember("m1", "Alice"), TrelloMember("m2", "")]
        labels = [TrelloLabel("l1", "Urgent", "red"), TrelloLabel("l2", "", None)]
        card = TestUtils.create_full_card(self.card, members=members, labels=labels)

        self._render(card)

        self.assertEqual("**Alice** (m1)\n**Unknown Member** (Unknown ID)\n", read(self._path("CardUsers.md")))
        self.assertEqual("**Urgent** - red (l1)\n**** -  (l2)\n", read(self._path("CardLabels.md")))

    def test_dates_and_cover_color(self):
        self.card.due = datetime.datetime(2024, 1, 31, 12, 0, 0)
        self.card.due_complete = True
        self.card.start = datetime.datetime(2024, 1, 1, 8, 30, 0)
        self.card.cover = TrelloCover(color="green")
        card = TestUtils.create_full_card(self.card)

        self._render(card)

        self.assertEqual("2024-01-31 12:00:00", read(self._path("CardDueDate (Completed).md")))
        self.assertFalse(os.path.exists(self._path("CardDueDate.md")))
        self.assertEqual("2024-01-01 08:30:00", read(self._path("CardStartDate.md")))
        self.assertEqual("green", read(self._path("CardCoverColor.md")))

    @unittest.skipIf(os.name == "nt", "POSIX permissions only")
    def test_files_are_owner_only(self):
        self._render(TestUtils.create_full_card(self.card))
        mode = stat.S_IMODE(os.stat(self._path("CardDescription.md")).st_mode)
        self.assertEqual(0o600, mode)

    def test_sub_resource_failure_skips_only_that_file(self):
        self.api.get_card_members.side_effect = TrelloApiException("members down", 503)
        card = TestUtils.create_full_card(self.card, members=None)

        errors = self._render(card)

        self.assertEqual(1, len(errors))
        self.assertFalse(os.path.exists(self._path("CardUsers.md")))
        self.assertTrue(os.path.exists(self._path("CardLabels.md")))
        self.assertTrue(os.path.exists(self._path("CardHistory.md")))
        self.assertFalse(self.run_status.had_errors)

    def test_write_failure_fails_card_after_running_all_steps(self):
        original_write = SecureFileUtils.write_secure_file

        def failing_write(file_path, data):
            if file_path.endswith("CardComments.md"):
                raise OSError("disk full")
            return original_write(file_path, data)

        card = TestUtils.create_full_card(self.card)
        with patch("trello_exporter.export.renderer.SecureFileUtils.write_secure_file", side_effect=failing_write):
            with self.assertRaises(CardExportException) as cm:
                self._render(card)

        self.assertEqual(1, len(cm.exception.errors))
        self.assertTrue(os.path.exists(self._path("CardHistory.md")))
        self.assertTrue(self.run_status.had_errors)

    def test_link_card(self):
        file_path = os.path.join(self._tmp.name, "Board", "To Do", "Link Cards Only", "CARD - example.com.md")
        self.renderer.render_link_card(TestUtils.create_card("https://example.com", "list1"), file_path)
        self.assertEqual("https://example.com", read(file_path))
