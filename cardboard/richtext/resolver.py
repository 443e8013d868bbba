from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, NavigableString

from .attachments import ATTACHMENT_TAG, MENTION_CONTENT_TYPE, AttachmentCodec
from .models import UserRecord
from .repository import UserDirectory

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"(?<!\w)@(?P<username>\w+)")


@dataclass
class ResolverConfig:
    secret_key: str
    salt: str = "attachable"
    content_type: str = MENTION_CONTENT_TYPE


def _text_nodes(soup: BeautifulSoup) -> List[NavigableString]:
    # Plain text only: comments, script bodies and anything already inside an
    # attachment are never scanned.
    return [
        node
        for node in soup.find_all(string=True)
        if type(node) is NavigableString and "@" in node and node.find_parent(ATTACHMENT_TAG) is None
    ]


class MentionResolver:
    """
    Replaces `@username` tokens in rich text with signed attachment
    references. Tokens that do not name a directory user are left exactly as
    written. The resolver keeps no state between calls.

    Content in which nothing resolves is returned as given. Otherwise the
    document is re-serialized by BeautifulSoup, so text outside the new
    references keeps its meaning but may come back in normalized markup
    (for example a bare `<` is written as `&lt;`).
    """

    def __init__(self, codec: AttachmentCodec, content_type: str = MENTION_CONTENT_TYPE):
        self.codec = codec
        self.content_type = content_type

    @classmethod
    def from_config(cls, config: ResolverConfig) -> "MentionResolver":
        return cls(AttachmentCodec(config.secret_key, salt=config.salt), content_type=config.content_type)

    def resolve(self, content: str, directory: UserDirectory) -> str:
        if not content or "@" not in content:
            return content

        soup = BeautifulSoup(content, "html.parser")
        found: Dict[str, Optional[UserRecord]] = {}
        replaced = 0
        for node in _text_nodes(soup):
            pieces = []
            cursor = 0
            text = str(node)
            for match in MENTION_PATTERN.finditer(text):
                user = self._lookup(match.group("username"), directory, found)
                if user is None:
                    continue
                if match.start() > cursor:
                    pieces.append(text[cursor:match.start()])
                pieces.append(self.codec.build_tag(soup, user, content_type=self.content_type))
                cursor = match.end()
                replaced += 1
            if not pieces:
                continue
            if cursor < len(text):
                pieces.append(text[cursor:])
            node.replace_with(*pieces)

        logger.debug("Resolved %d mention(s)", replaced)
        if not replaced:
            return content
        return str(soup)

    def mentioned_users(self, content: str, directory: UserDirectory) -> List[UserRecord]:
        """
        Distinct users the content would mention, in first-appearance order.
        """
        if not content or "@" not in content:
            return []
        found: Dict[str, Optional[UserRecord]] = {}
        users: List[UserRecord] = []
        for node in _text_nodes(BeautifulSoup(content, "html.parser")):
            for match in MENTION_PATTERN.finditer(str(node)):
                user = self._lookup(match.group("username"), directory, found)
                if user is not None and user not in users:
                    users.append(user)
        return users

    def _lookup(
        self,
        username: str,
        directory: UserDirectory,
        found: Dict[str, Optional[UserRecord]],
    ) -> Optional[UserRecord]:
        key = username.lower()
        if key not in found:
            found[key] = directory.find_by_username(username)
        return found[key]


def resolve(content: str, directory: UserDirectory, codec: AttachmentCodec) -> str:
    return MentionResolver(codec).resolve(content, directory)
