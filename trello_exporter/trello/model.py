import datetime
from dataclasses import dataclass, field
from typing import List, Optional

COMMENT_ACTION_TYPE = "commentCard"
LINK_CARD_ROLE = "link"


@dataclass
class TrelloBoard:
    id: str
    name: str
    background_image: Optional[str] = None
    url: Optional[str] = None

    @property
    def display_name(self):
        return f"{self.name} ({self.id})"


@dataclass
class TrelloList:
    id: str
    name: str
    board_id: str
    closed: bool = False
    pos: float = 0


@dataclass
class TrelloLabel:
    id: str
    name: str
    color: Optional[str]


@dataclass
class TrelloMember:
    id: str
    full_name: str
    username: Optional[str] = None


@dataclass
class TrelloAttachment:
    """
    url (coming directly from attachment JSON): https://trello.com/1/cards/<card>/attachments/<attachment>/download/image.png
    Uploaded files can only be downloaded via api.trello.com with an OAuth header,
    see: https://community.developer.atlassian.com/t/update-authenticated-access-to-s3/43681
    """
    id: str
    name: str
    url: str
    is_upload: bool
    file_name: Optional[str] = None


@dataclass
class TrelloChecklistItem:
    id: str
    name: str
    checked: bool
    pos: float = 0


@dataclass
class TrelloChecklist:
    id: str
    name: str
    card_id: Optional[str]
    items: List[TrelloChecklistItem]
    pos: float = 0


@dataclass
class TrelloAction:
    id: str
    type: str
    date: Optional[datetime.datetime]
    author: Optional[str]
    text: str = ""

    @property
    def is_comment(self):
        return self.type == COMMENT_ACTION_TYPE


@dataclass
class TrelloCover:
    color: Optional[str] = None
    attachment_id: Optional[str] = None

    @property
    def is_color(self):
        return bool(self.color)

    @property
    def is_image(self):
        return not self.color and bool(self.attachment_id)


@dataclass
class TrelloCard:
    """
    Collections are None when the payload the card was parsed from did not contain them.
    Empty lists mean the collection was fetched and is empty.
    """
    id: str
    name: str
    description: str
    closed: bool
    list_id: str
    due: Optional[datetime.datetime] = None
    due_complete: bool = False
    start: Optional[datetime.datetime] = None
    cover: Optional[TrelloCover] = None
    checklist_ids: List[str] = field(default_factory=list)
    attachments: Optional[List[TrelloAttachment]] = None
    checklists: Optional[List[TrelloChecklist]] = None
    actions: Optional[List[TrelloAction]] = None
    members: Optional[List[TrelloMember]] = None
    labels: Optional[List[TrelloLabel]] = None

    @property
    def comments(self) -> Optional[List[TrelloAction]]:
        if self.actions is None:
            return None
        return [a for a in self.actions if a.is_comment]

    def is_cover_attachment(self, attachment: TrelloAttachment):
        return self.cover is not None and self.cover.attachment_id == attachment.id
