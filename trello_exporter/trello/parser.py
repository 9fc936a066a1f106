import logging
from typing import List, Dict, Any, Optional

from trello_exporter.trello.model import TrelloList, TrelloAttachment, TrelloCard, TrelloChecklistItem, \
    TrelloChecklist, TrelloBoard, TrelloLabel, TrelloMember, TrelloAction, TrelloCover
from trello_exporter.utils import DateUtils

LOG = logging.getLogger(__name__)

CHECK_ITEM_COMPLETE = "complete"


class TrelloObjectParser:
    @staticmethod
    def parse_board(board_json: Dict[str, Any]) -> TrelloBoard:
        prefs = board_json.get("prefs") or {}
        return TrelloBoard(board_json["id"],
                           board_json.get("name", ""),
                           background_image=prefs.get("backgroundImage") or None,
                           url=board_json.get("url"))

    @staticmethod
    def parse_trello_lists(lists_json) -> List[TrelloList]:
        return [TrelloObjectParser.parse_trello_list(l) for l in lists_json if l]

    @staticmethod
    def parse_trello_list(list_json) -> TrelloList:
        return TrelloList(list_json["id"],
                          list_json.get("name", ""),
                          list_json.get("idBoard"),
                          closed=list_json.get("closed", False),
                          pos=list_json.get("pos", 0))

    @staticmethod
    def parse_labels(labels_json) -> List[TrelloLabel]:
        return [TrelloLabel(l["id"], l.get("name") or "", l.get("color")) for l in labels_json if l]

    @staticmethod
    def parse_members(members_json) -> List[TrelloMember]:
        return [TrelloMember(m.get("id", ""), m.get("fullName") or "", m.get("username")) for m in members_json if m]

    @staticmethod
    def parse_attachments(attachments_json) -> List[TrelloAttachment]:
        attachments = []
        for attachment_json in attachments_json:
            if not attachment_json:
                continue
            attachments.append(TrelloAttachment(attachment_json["id"],
                                                attachment_json.get("name") or "",
                                                attachment_json.get("url") or "",
                                                attachment_json.get("isUpload", False),
                                                attachment_json.get("fileName")))
        return attachments

    @staticmethod
    def parse_actions(actions_json) -> List[TrelloAction]:
        actions = []
        for action in actions_json:
            if not action:
                continue
            member_creator = action.get("memberCreator") or {}
            data = action.get("data") or {}
            if "text" not in data:
                LOG.debug("No 'text' key found in data of action: %s (%s)", action.get("id"), action.get("type"))
            actions.append(TrelloAction(action.get("id", ""),
                                        action.get("type", ""),
                                        DateUtils.parse_trello_date(action.get("date")),
                                        member_creator.get("fullName") or None,
                                        data.get("text", "")))
        return actions

    @staticmethod
    def parse_trello_checklist(checklist_json) -> TrelloChecklist:
        items = []
        for checkitem in checklist_json.get("checkItems") or []:
            items.append(TrelloChecklistItem(checkitem["id"],
                                             checkitem.get("name", ""),
                                             checkitem.get("state") == CHECK_ITEM_COMPLETE,
                                             checkitem.get("pos", 0)))
        items.sort(key=lambda i: i.pos)
        return TrelloChecklist(checklist_json["id"],
                               checklist_json.get("name", ""),
                               checklist_json.get("idCard"),
                               items,
                               checklist_json.get("pos", 0))

    @staticmethod
    def parse_trello_checklists(checklists_json) -> List[TrelloChecklist]:
        checklists = [TrelloObjectParser.parse_trello_checklist(c) for c in checklists_json if c]
        return sorted(checklists, key=lambda c: c.pos)

    @staticmethod
    def parse_cover(cover_json) -> Optional[TrelloCover]:
        if not cover_json:
            return None
        color = cover_json.get("color")
        attachment_id = cover_json.get("idAttachment") or cover_json.get("idUploadedBackground")
        if not color and not attachment_id:
            return None
        return TrelloCover(color, attachment_id)

    @staticmethod
    def parse_trello_card(card_json: Dict[str, Any]) -> TrelloCard:
        """
        Parses both the lightweight card payload and the comprehensive one.
        Sub-resources missing from the payload stay None.
        """
        def _optional(key, parse_func):
            if key not in card_json or card_json[key] is None:
                return None
            return parse_func(card_json[key])

        return TrelloCard(card_json["id"],
                          card_json.get("name", ""),
                          card_json.get("desc") or "",
                          card_json.get("closed", False),
                          card_json.get("idList"),
                          due=DateUtils.parse_trello_date(card_json.get("due")),
                          due_complete=card_json.get("dueComplete", False),
                          start=DateUtils.parse_trello_date(card_json.get("start")),
                          cover=TrelloObjectParser.parse_cover(card_json.get("cover")),
                          checklist_ids=[cid for cid in card_json.get("idChecklists") or [] if cid],
                          attachments=_optional("attachments", TrelloObjectParser.parse_attachments),
                          checklists=_optional("checklists", TrelloObjectParser.parse_trello_checklists),
                          actions=_optional("actions", TrelloObjectParser.parse_actions),
                          members=_optional("members", TrelloObjectParser.parse_members),
                          labels=_optional("labels", TrelloObjectParser.parse_labels))

    @staticmethod
    def parse_trello_cards(cards_json) -> List[TrelloCard]:
        return [TrelloObjectParser.parse_trello_card(c) for c in cards_json if c]
