from __future__ import annotations

import hashlib
import os
import uuid
from functools import lru_cache
from pathlib import Path
from typing import List

from cardboard.richtext import (
    BoardRepository,
    CardService,
    MentionResolver,
    ResolverConfig,
    SqlAlchemyBoardRepository,
    SqlAlchemyUserDirectory,
    UserDirectory,
    WhooshCardIndexer,
)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./data/cardboard.db"


def _database_url() -> str:
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def get_cors_origins() -> List[str]:
    raw = os.getenv("CARDBOARD_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


@lru_cache(maxsize=1)
def get_directory() -> UserDirectory:
    return SqlAlchemyUserDirectory(_database_url())


@lru_cache(maxsize=1)
def get_boards() -> BoardRepository:
    return SqlAlchemyBoardRepository(_database_url())


@lru_cache(maxsize=1)
def get_indexer() -> WhooshCardIndexer:
    whoosh_dir = Path(os.getenv("WHOOSH_DIR", "./data/whoosh"))
    return WhooshCardIndexer(whoosh_dir)


@lru_cache(maxsize=1)
def get_resolver() -> MentionResolver:
    config = ResolverConfig(
        secret_key=os.getenv("CARDBOARD_SECRET_KEY", "dev-secret-change-me"),
        salt=os.getenv("CARDBOARD_ATTACHMENT_SALT", "attachable"),
    )
    return MentionResolver.from_config(config)


def get_card_service() -> CardService:
    return CardService(
        boards=get_boards(),
        directory=get_directory(),
        resolver=get_resolver(),
        indexer=get_indexer(),
    )


def build_board_id(name: str) -> str:
    normalized = name.strip().lower()
    slug = "".join(ch if ch.isalnum() else "-" for ch in normalized).strip("-") or "board"
    digest = hashlib.md5(normalized.encode("utf-8")).hexdigest()[:8]
    return f"{slug}-{digest}"


def build_user_id() -> str:
    return uuid.uuid4().hex
