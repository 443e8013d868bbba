"""
Rich-text subsystem exports.
"""

from .attachments import AttachmentCodec, to_plain_text
from .indexing import CardIndexer, NoopCardIndexer, WhooshCardIndexer
from .models import (
    Attachable,
    AttachmentReference,
    BoardRecord,
    CardRecord,
    MovePosition,
    UserRecord,
)
from .repository import (
    BoardRepository,
    InMemoryBoardRepository,
    InMemoryUserDirectory,
    SqlAlchemyBoardRepository,
    SqlAlchemyUserDirectory,
    UserDirectory,
)
from .resolver import MENTION_PATTERN, MentionResolver, ResolverConfig, resolve
from .service import CardService

__all__ = [
    "Attachable",
    "AttachmentCodec",
    "AttachmentReference",
    "BoardRecord",
    "BoardRepository",
    "CardIndexer",
    "CardRecord",
    "CardService",
    "InMemoryBoardRepository",
    "InMemoryUserDirectory",
    "MENTION_PATTERN",
    "MentionResolver",
    "MovePosition",
    "NoopCardIndexer",
    "ResolverConfig",
    "SqlAlchemyBoardRepository",
    "SqlAlchemyUserDirectory",
    "UserDirectory",
    "UserRecord",
    "WhooshCardIndexer",
    "resolve",
    "to_plain_text",
]
