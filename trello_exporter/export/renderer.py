import logging
import os
from typing import List, Callable

from pythoncommons.file_utils import FileUtils

from trello_exporter.constants import FileName, UNKNOWN_MEMBER, UNKNOWN_ID
from trello_exporter.display.console import CliLogger
from trello_exporter.export.buffer import MarkdownBuffer
from trello_exporter.export.errors import ErrorHandler, ProcessingError, Severity, CardExportException
from trello_exporter.export.sanitizer import PathSanitizer
from trello_exporter.trello.api import AbstractTrelloApi
from trello_exporter.trello.model import TrelloCard, TrelloAttachment
from trello_exporter.trello.service import CardResourceFetcher
from trello_exporter.utils import SecureFileUtils, DateUtils, LogSanitizer

LOG = logging.getLogger(__name__)
CLI_LOG = CliLogger(LOG)


class CardRenderer:
    """
    Writes the Markdown files of one regular card into its directory.
    Steps run in a fixed order and every step runs even if an earlier one failed.
    Failing to fetch a sub-resource skips its file (ERROR), failing to write a file is CRITICAL.
    """
    def __init__(self, api: AbstractTrelloApi, fetcher: CardResourceFetcher, error_handler: ErrorHandler):
        self._api = api
        self._fetcher = fetcher
        self._error_handler = error_handler

    def render(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer) -> List[ProcessingError]:
        self._ensure_dir(card_dir, card)
        steps: List[Callable[[TrelloCard, str, MarkdownBuffer], None]] = [
            self._write_description,
            self._write_attachments,
            self._write_checklists,
            self._write_comments,
            self._write_users,
            self._write_labels,
            self._write_history,
            self._write_dates,
            self._write_cover,
        ]

        errors: List[ProcessingError] = []
        for step in steps:
            try:
                step(card, card_dir, buf)
            except ProcessingError as e:
                self._error_handler.handle(e)
                errors.append(e)

        critical_errors = [e for e in errors if e.is_critical]
        if critical_errors:
            raise CardExportException(card.name, critical_errors)
        return errors

    def render_link_card(self, card: TrelloCard, file_path: str):
        self._ensure_dir(os.path.dirname(file_path), card)
        LOG.info("Creating link card file: %s", file_path)
        self._write_file(file_path, card.name, card)

    @staticmethod
    def _ensure_dir(dir_path: str, card: TrelloCard):
        with ErrorHandler.guard("create directory", f"{dir_path} for card {card.name}", Severity.CRITICAL):
            FileUtils.ensure_dir_created(dir_path)

    @staticmethod
    def _write_file(file_path: str, data, card: TrelloCard):
        with ErrorHandler.guard("write file", f"{file_path} for card {card.name}", Severity.CRITICAL):
            SecureFileUtils.write_secure_file(file_path, data)

    def _write_description(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        self._write_file(os.path.join(card_dir, FileName.CARD_DESCRIPTION), card.description, card)

    def _write_attachments(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        attachments_dir = os.path.join(card_dir, FileName.ATTACHMENTS_DIR)
        self._ensure_dir(attachments_dir, card)
        attachments = self._fetcher.get_attachments(card)
        if attachments:
            LOG.info("%s has %d attachments", card.name, len(attachments))
        else:
            LOG.warning("No attachments found for card %s", card.name)

        buf.reset()
        for attachment in attachments:
            if not attachment.is_upload:
                buf.write_line(attachment.url)
                continue
            try:
                self._download_attachment(card, attachment, attachments_dir)
            except ProcessingError as e:
                # A failed download must not stop the remaining attachments
                if e.is_critical:
                    raise
                self._error_handler.handle(e)
        self._write_file(os.path.join(attachments_dir, FileName.URL_ATTACHMENTS), buf.getvalue(), card)

    def _download_attachment(self, card: TrelloCard, attachment: TrelloAttachment, attachments_dir: str):
        local_name = PathSanitizer.sanitize(attachment.name)
        if card.is_cover_attachment(attachment):
            local_name += FileName.COVER_SUFFIX
            LOG.info("Attachment %s is the cover of card %s", attachment.name, card.name)
        file_path = os.path.join(attachments_dir, local_name)
        url = AbstractTrelloApi.attachment_download_url(card.id, attachment)

        LOG.debug("Downloading attachment from %s to %s", LogSanitizer.sanitize_for_logging(url), file_path)
        with ErrorHandler.guard("download attachment", f"{attachment.name} of card {card.name}", Severity.ERROR):
            data = self._api.download_file_authenticated(url)
        self._write_file(file_path, data, card)

    def _write_checklists(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        checklists_dir = os.path.join(card_dir, FileName.CHECKLISTS_DIR)
        self._ensure_dir(checklists_dir, card)
        checklists = self._fetcher.get_checklists(card)
        LOG.info("Found %d checklists for card %s", len(checklists), card.name)

        used_names = set()
        collision_counter = 0
        for checklist in checklists:
            buf.reset()
            for item in checklist.items:
                mark = "x" if item.checked else " "
                buf.write_line(f"- [{mark}] {item.name}")

            checklist_name = PathSanitizer.sanitize(checklist.name)
            file_name = checklist_name + FileName.MARKDOWN_EXT
            # A counter name can itself be taken by a checklist literally named e.g. "Tasks 1"
            while file_name in used_names:
                collision_counter += 1
                file_name = f"{checklist_name} {collision_counter}{FileName.MARKDOWN_EXT}"
            used_names.add(file_name)
            self._write_file(os.path.join(checklists_dir, file_name), buf.getvalue(), card)

    def _write_comments(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        comments = self._fetcher.get_comments(card)
        buf.reset()
        for comment in comments:
            author = comment.author or UNKNOWN_MEMBER
            buf.write_line(f"**{author}** ({DateUtils.format_timestamp(comment.date)}): {comment.text}")
        if not comments:
            LOG.warning("No comments found on card %s", card.name)
        self._write_file(os.path.join(card_dir, FileName.CARD_COMMENTS), buf.getvalue(), card)

    def _write_users(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        members = self._fetcher.get_members(card)
        buf.reset()
        for member in members:
            if member is None or not member.full_name:
                buf.write_line(f"**{UNKNOWN_MEMBER}** ({UNKNOWN_ID})")
            else:
                buf.write_line(f"**{member.full_name}** ({member.id})")
        self._write_file(os.path.join(card_dir, FileName.CARD_USERS), buf.getvalue(), card)

    def _write_labels(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        labels = self._fetcher.get_labels(card)
        buf.reset()
        for label in labels:
            if label is None:
                continue
            buf.write_line(f"**{label.name}** - {label.color or ''} ({label.id})")
        self._write_file(os.path.join(card_dir, FileName.CARD_LABELS), buf.getvalue(), card)

    def _write_history(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        history = self._fetcher.get_history(card)
        buf.reset()
        for action in history:
            author = action.author or UNKNOWN_MEMBER
            buf.write_line(f"**{action.type}** ({DateUtils.format_timestamp(action.date)}): {author} - {action.text}")
        self._write_file(os.path.join(card_dir, FileName.CARD_HISTORY), buf.getvalue(), card)

    def _write_dates(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        due_file = FileName.CARD_DUE_DATE_COMPLETED if card.due and card.due_complete else FileName.CARD_DUE_DATE
        self._write_file(os.path.join(card_dir, due_file), DateUtils.format_timestamp(card.due), card)
        self._write_file(os.path.join(card_dir, FileName.CARD_START_DATE), DateUtils.format_timestamp(card.start), card)

    def _write_cover(self, card: TrelloCard, card_dir: str, buf: MarkdownBuffer):
        if card.cover is None:
            return
        if card.cover.is_color:
            self._write_file(os.path.join(card_dir, FileName.CARD_COVER_COLOR), card.cover.color, card)
        elif card.cover.is_image:
            LOG.debug("Cover of card %s is an image, stored with the attachments", card.name)
