from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Protocol

from whoosh import index
from whoosh.fields import ID, NUMERIC, TEXT, Schema
from whoosh.qparser import MultifieldParser
from whoosh.query import And, Term

from .attachments import to_plain_text
from .models import CardRecord


class CardIndexer(Protocol):
    def index_card(self, card: CardRecord) -> None:
        ...

    def delete_card(self, card_id: str) -> None:
        ...

    def search(self, query_str: str, board_id: Optional[str] = None, limit: int = 10) -> List[Dict]:
        ...


class NoopCardIndexer:
    """
    Default indexer stub. Keeps the card service wired without pulling in Whoosh.
    """

    def index_card(self, card: CardRecord) -> None:
        return None

    def delete_card(self, card_id: str) -> None:
        return None

    def search(self, query_str: str, board_id: Optional[str] = None, limit: int = 10) -> List[Dict]:
        return []


class WhooshCardIndexer:
    """
    File-system backed Whoosh index over card titles and the plain-text form
    of their bodies, so a mention is searchable by the display name it shows.
    """

    def __init__(self, index_dir: Path):
        self.index_dir = index_dir
        self.index_dir.mkdir(parents=True, exist_ok=True)
        self.schema = Schema(
            card_id=ID(stored=True, unique=True),
            board_id=ID(stored=True),
            row_order=NUMERIC(stored=True, sortable=True),
            title=TEXT(stored=True),
            text=TEXT(stored=True),
        )
        if index.exists_in(self.index_dir):
            self.ix = index.open_dir(self.index_dir)
        else:
            self.ix = index.create_in(self.index_dir, self.schema)

    def index_card(self, card: CardRecord) -> None:
        writer = self.ix.writer()
        writer.update_document(
            card_id=card.id,
            board_id=card.board_id,
            row_order=card.row_order,
            title=card.title or "",
            text=to_plain_text(card.body),
        )
        writer.commit()

    def delete_card(self, card_id: str) -> None:
        writer = self.ix.writer()
        writer.delete_by_term("card_id", card_id)
        writer.commit()

    def search(self, query_str: str, board_id: Optional[str] = None, limit: int = 10) -> List[Dict]:
        """
        Return a list of plain dicts so callers are safe after the searcher closes.
        """
        qp = MultifieldParser(["title", "text"], schema=self.schema)
        q = qp.parse(query_str)
        if board_id:
            q = And([q, Term("board_id", board_id)])
        with self.ix.searcher() as searcher:
            results = searcher.search(q, limit=limit)
            hits = []
            for hit in results:
                fields = hit.fields()
                hits.append(
                    {
                        "card_id": fields.get("card_id"),
                        "board_id": fields.get("board_id"),
                        "row_order": fields.get("row_order"),
                        "title": fields.get("title"),
                        "text": fields.get("text"),
                    }
                )
            return hits
