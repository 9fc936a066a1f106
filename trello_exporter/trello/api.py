import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

import requests

from trello_exporter.constants import TRELLO_API_ROOT, ACTIONS_LIMIT, ATTACHMENT_DOWNLOAD_URL_TMPL
from trello_exporter.exception import TrelloApiException, TrelloNotFoundException, TrelloConfigException
from trello_exporter.trello.filter import CardFilter
from trello_exporter.trello.model import TrelloBoard, TrelloList, TrelloLabel, TrelloMember, TrelloCard, \
    TrelloAttachment, TrelloChecklist, TrelloAction
from trello_exporter.trello.parser import TrelloObjectParser
from trello_exporter.utils import LogSanitizer

LOG = logging.getLogger(__name__)

BOARD_API_TMPL = "boards/{id}"
BOARD_LISTS_API_TMPL = "boards/{id}/lists"
BOARD_LABELS_API_TMPL = "boards/{id}/labels"
BOARD_MEMBERS_API_TMPL = "boards/{id}/members"
BOARD_CARDS_API_TMPL = "boards/{id}/cards"
LIST_API_TMPL = "lists/{id}"
CARD_API_TMPL = "cards/{id}"
CARD_ATTACHMENTS_API_TMPL = "cards/{id}/attachments"
CARD_ACTIONS_API_TMPL = "cards/{id}/actions"
CARD_MEMBERS_API_TMPL = "cards/{id}/members"
CHECKLIST_API_TMPL = "checklists/{id}"
SEARCH_API = "search"

REQUEST_TIMEOUT_SECONDS = 60
DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class AbstractTrelloApi(ABC):
    @abstractmethod
    def get_board(self, board_id: str) -> TrelloBoard:
        """Raises TrelloNotFoundException if the board does not exist."""
        pass

    @abstractmethod
    def get_lists(self, board_id: str) -> List[TrelloList]:
        pass

    @abstractmethod
    def get_list(self, list_id: str) -> TrelloList:
        pass

    @abstractmethod
    def get_board_labels(self, board_id: str) -> List[TrelloLabel]:
        pass

    @abstractmethod
    def get_board_members(self, board_id: str) -> List[TrelloMember]:
        pass

    @abstractmethod
    def get_cards(self, board_id: str, card_filter: CardFilter) -> List[TrelloCard]:
        pass

    @abstractmethod
    def search_cards(self, query: str) -> List[TrelloCard]:
        pass

    @abstractmethod
    def get_card_comprehensive(self, card_id: str) -> TrelloCard:
        """Card with attachments, actions, members, labels and checklists in a single call."""
        pass

    @abstractmethod
    def get_card_role(self, card_id: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_attachments(self, card_id: str) -> List[TrelloAttachment]:
        pass

    @abstractmethod
    def get_checklist(self, checklist_id: str) -> TrelloChecklist:
        pass

    @abstractmethod
    def get_actions(self, card_id: str, action_filter: str = "all") -> List[TrelloAction]:
        pass

    @abstractmethod
    def get_card_members(self, card_id: str) -> List[TrelloMember]:
        pass

    @abstractmethod
    def get_card_labels(self, card_id: str) -> List[TrelloLabel]:
        pass

    @abstractmethod
    def download_file(self, url: str) -> bytes:
        pass

    @abstractmethod
    def download_file_authenticated(self, url: str) -> bytes:
        pass

    @staticmethod
    def attachment_download_url(card_id: str, attachment: TrelloAttachment):
        # Source: https://trello.com/1/cards/<card>/attachments/<attachment>/download/image.png
        # Target: https://api.trello.com/1/cards/<card>/attachments/<attachment>/download/image.png
        file_name = attachment.file_name if attachment.file_name else attachment.name
        return ATTACHMENT_DOWNLOAD_URL_TMPL.format(card_id=card_id, attachment_id=attachment.id, file_name=file_name)


class TrelloApi(AbstractTrelloApi):
    api_root = TRELLO_API_ROOT
    auth_query_params = None
    authorization_headers = None
    headers_accept_json = {
        "Accept": "application/json"
    }

    def __init__(self):
        pass

    @classmethod
    def init(cls, api_key, token, api_root: Optional[str] = None):
        TrelloApi.auth_query_params = {
            'key': api_key,
            'token': token
        }
        TrelloApi.authorization_headers = {
            "Authorization": "OAuth oauth_consumer_key=\"{}\", oauth_token=\"{}\"".format(api_key, token)
        }
        if api_root:
            TrelloApi.api_root = api_root if api_root.endswith("/") else api_root + "/"

    @classmethod
    def _url(cls, path_tmpl: str, **kwargs):
        return cls.api_root + path_tmpl.format(**kwargs)

    @classmethod
    def _get_json(cls, url: str, params: Dict[str, Any] = None):
        if TrelloApi.auth_query_params is None:
            raise TrelloConfigException("TrelloApi is not initialized with credentials")
        query = dict(TrelloApi.auth_query_params)
        if params:
            query.update(params)

        LOG.debug("GET %s, params: %s", url, {k: v for k, v in query.items() if k not in ("key", "token")})
        try:
            response = requests.request(
                "GET",
                url,
                headers=TrelloApi.headers_accept_json,
                params=query,
                timeout=REQUEST_TIMEOUT_SECONDS
            )
        except requests.exceptions.RequestException as e:
            raise TrelloApiException(f"Request failed: {LogSanitizer.sanitize_for_logging(url)}: {e}") from e

        cls._check_response(response, url)
        return response.json()

    @staticmethod
    def _check_response(response, url):
        if response.status_code == 404:
            raise TrelloNotFoundException(f"Resource not found: {LogSanitizer.sanitize_for_logging(url)}")
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise TrelloApiException(f"Bad status: {response.status_code} for {LogSanitizer.sanitize_for_logging(url)}",
                                     status_code=response.status_code) from e

    @classmethod
    def get_board(cls, board_id: str) -> TrelloBoard:
        board_json = cls._get_json(cls._url(BOARD_API_TMPL, id=board_id), {"fields": "id,name,url,prefs"})
        return TrelloObjectParser.parse_board(board_json)

    @classmethod
    def get_lists(cls, board_id: str) -> List[TrelloList]:
        lists_json = cls._get_json(cls._url(BOARD_LISTS_API_TMPL, id=board_id), {"filter": "all"})
        return TrelloObjectParser.parse_trello_lists(lists_json)

    @classmethod
    def get_list(cls, list_id: str) -> TrelloList:
        list_json = cls._get_json(cls._url(LIST_API_TMPL, id=list_id))
        return TrelloObjectParser.parse_trello_list(list_json)

    @classmethod
    def get_board_labels(cls, board_id: str) -> List[TrelloLabel]:
        labels_json = cls._get_json(cls._url(BOARD_LABELS_API_TMPL, id=board_id))
        return TrelloObjectParser.parse_labels(labels_json)

    @classmethod
    def get_board_members(cls, board_id: str) -> List[TrelloMember]:
        members_json = cls._get_json(cls._url(BOARD_MEMBERS_API_TMPL, id=board_id), {"fields": "fullName,username"})
        return TrelloObjectParser.parse_members(members_json)

    @classmethod
    def get_cards(cls, board_id: str, card_filter: CardFilter) -> List[TrelloCard]:
        cards_json = cls._get_json(cls._url(BOARD_CARDS_API_TMPL, id=board_id), {"filter": card_filter.value})
        return TrelloObjectParser.parse_trello_cards(cards_json)

    @classmethod
    def search_cards(cls, query: str) -> List[TrelloCard]:
        params = {
            "query": query,
            "modelTypes": "cards",
            "cards_limit": 1000,
            "partial": "false",
        }
        result_json = cls._get_json(cls._url(SEARCH_API), params)
        return TrelloObjectParser.parse_trello_cards(result_json.get("cards", []))

    @classmethod
    def get_card_comprehensive(cls, card_id: str) -> TrelloCard:
        params = {
            "attachments": "true",
            "actions": "all",
            "actions_limit": ACTIONS_LIMIT,
            "members": "true",
            "labels": "all",
            "checklists": "all",
            "checkItemStates": "true",
        }
        card_json = cls._get_json(cls._url(CARD_API_TMPL, id=card_id), params)
        return TrelloObjectParser.parse_trello_card(card_json)

    @classmethod
    def get_card_role(cls, card_id: str) -> Optional[str]:
        card_json = cls._get_json(cls._url(CARD_API_TMPL, id=card_id), {"fields": "name,cardRole"})
        return card_json.get("cardRole")

    @classmethod
    def get_attachments(cls, card_id: str) -> List[TrelloAttachment]:
        attachments_json = cls._get_json(cls._url(CARD_ATTACHMENTS_API_TMPL, id=card_id))
        return TrelloObjectParser.parse_attachments(attachments_json)

    @classmethod
    def get_checklist(cls, checklist_id: str) -> TrelloChecklist:
        checklist_json = cls._get_json(cls._url(CHECKLIST_API_TMPL, id=checklist_id), {"checkItems": "all"})
        return TrelloObjectParser.parse_trello_checklist(checklist_json)

    @classmethod
    def get_actions(cls, card_id: str, action_filter: str = "all") -> List[TrelloAction]:
        params = {"filter": action_filter, "limit": ACTIONS_LIMIT}
        actions_json = cls._get_json(cls._url(CARD_ACTIONS_API_TMPL, id=card_id), params)
        return TrelloObjectParser.parse_actions(actions_json)

    @classmethod
    def get_card_members(cls, card_id: str) -> List[TrelloMember]:
        members_json = cls._get_json(cls._url(CARD_MEMBERS_API_TMPL, id=card_id))
        return TrelloObjectParser.parse_members(members_json)

    @classmethod
    def get_card_labels(cls, card_id: str) -> List[TrelloLabel]:
        card_json = cls._get_json(cls._url(CARD_API_TMPL, id=card_id), {"fields": "labels", "labels": "all"})
        return TrelloObjectParser.parse_labels(card_json.get("labels") or [])

    @classmethod
    def download_file(cls, url: str) -> bytes:
        return b"".join(cls._get_file_chunks(url, headers=None))

    @classmethod
    def download_file_authenticated(cls, url: str) -> bytes:
        if TrelloApi.authorization_headers is None:
            raise TrelloConfigException("TrelloApi is not initialized with credentials")
        return b"".join(cls._get_file_chunks(url, headers=TrelloApi.authorization_headers))

    @classmethod
    def _get_file_chunks(cls, url: str, headers: Optional[Dict[str, str]]):
        """
        Initiates the request and yields data chunks, ensuring the connection is closed.
        """
        LOG.debug("Downloading file from URL: %s", LogSanitizer.sanitize_for_logging(url))
        try:
            with requests.request("GET", url, headers=headers, stream=True, timeout=REQUEST_TIMEOUT_SECONDS) as response:
                cls._check_response(response, url)
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:  # filter out keep-alive chunks
                        yield chunk
        except requests.exceptions.RequestException as e:
            raise TrelloApiException(f"Download failed: {LogSanitizer.sanitize_for_logging(url)}: {e}") from e
