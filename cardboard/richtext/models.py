from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol, runtime_checkable


class MovePosition(str, Enum):
    FIRST = "first"
    LAST = "last"
    UP = "up"
    DOWN = "down"


@runtime_checkable
class Attachable(Protocol):
    """
    Anything that can be embedded in rich text as an attachment. The kind is
    part of the global id so different record types never collide.
    """

    attachable_kind: str

    def to_reference_id(self) -> str:
        ...

    def to_display_fragment(self) -> str:
        ...


@dataclass(frozen=True)
class UserRecord:
    id: str
    username: str
    display_name: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow, compare=False)

    attachable_kind = "User"

    def to_reference_id(self) -> str:
        return self.id

    def to_display_fragment(self) -> str:
        return self.display_name or self.username


@dataclass
class BoardRecord:
    id: str
    name: str
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class CardRecord:
    id: str
    board_id: str
    title: str
    body: str = ""
    row_order: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class AttachmentReference:
    sgid: str
    content_type: str
    content: str
