from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag
from itsdangerous import BadSignature, URLSafeSerializer

from .models import Attachable, AttachmentReference, UserRecord
from .repository import UserDirectory

logger = logging.getLogger(__name__)

ATTACHMENT_TAG = "action-text-attachment"
MENTION_CONTENT_TYPE = "application/vnd.cardboard.mention"
GLOBAL_ID_PREFIX = "gid://cardboard"


def global_id(attachable: Attachable) -> str:
    return f"{GLOBAL_ID_PREFIX}/{attachable.attachable_kind}/{attachable.to_reference_id()}"


def parse_global_id(gid: str) -> Optional[Tuple[str, str]]:
    """
    Split `gid://cardboard/<Kind>/<id>` into (kind, id). Returns None for
    anything that is not one of ours.
    """
    prefix = GLOBAL_ID_PREFIX + "/"
    if not gid.startswith(prefix):
        return None
    kind, sep, record_id = gid[len(prefix):].partition("/")
    if not sep or not kind or not record_id:
        return None
    return kind, record_id


class AttachmentCodec:
    """
    Signs attachable identifiers and reads/writes the inline attachment
    element. The element carries the signed id plus a cached display fragment
    so renderers never need to look the record up to show it.
    """

    def __init__(self, secret_key: str, salt: str = "attachable"):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.serializer = URLSafeSerializer(secret_key, salt=salt)

    def sign(self, attachable: Attachable) -> str:
        return self.serializer.dumps({"gid": global_id(attachable)})

    def verify(self, sgid: str) -> Optional[str]:
        try:
            payload = self.serializer.loads(sgid)
        except BadSignature:
            logger.debug("Rejected attachment sgid with bad signature")
            return None
        if not isinstance(payload, dict):
            return None
        gid = payload.get("gid")
        return gid if isinstance(gid, str) else None

    def locate(self, sgid: str, directory: UserDirectory) -> Optional[UserRecord]:
        gid = self.verify(sgid)
        parsed = parse_global_id(gid) if gid else None
        if not parsed:
            return None
        kind, record_id = parsed
        if kind != UserRecord.attachable_kind:
            return None
        return directory.get_user(record_id)

    def build_tag(
        self,
        soup: BeautifulSoup,
        attachable: Attachable,
        content_type: str = MENTION_CONTENT_TYPE,
    ) -> Tag:
        """
        Attachment element owned by `soup`, ready to be inserted into it.
        """
        return soup.new_tag(
            ATTACHMENT_TAG,
            attrs={
                "sgid": self.sign(attachable),
                "content-type": content_type,
                "content": attachable.to_display_fragment(),
            },
        )

    def serialize(self, attachable: Attachable, content_type: str = MENTION_CONTENT_TYPE) -> str:
        return str(self.build_tag(BeautifulSoup("", "html.parser"), attachable, content_type))

    def extract(self, content: str) -> List[AttachmentReference]:
        references: List[AttachmentReference] = []
        if not content:
            return references
        soup = BeautifulSoup(content, "html.parser")
        for tag in soup.find_all(ATTACHMENT_TAG):
            sgid = tag.get("sgid")
            if not sgid:
                continue
            references.append(
                AttachmentReference(
                    sgid=sgid,
                    content_type=tag.get("content-type", ""),
                    content=tag.get("content", ""),
                )
            )
        return references


def to_plain_text(content: str) -> str:
    """
    Flatten rich text: attachments become their display fragment and
    everything else is reduced to its text.
    """
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    for tag in soup.find_all(ATTACHMENT_TAG):
        tag.replace_with(tag.get("content", ""))
    soup.smooth()
    return " ".join(soup.get_text(" ").split())
