from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Union

from .indexing import CardIndexer, NoopCardIndexer
from .models import BoardRecord, CardRecord, MovePosition
from .repository import BoardRepository, UserDirectory
from .resolver import MentionResolver

logger = logging.getLogger(__name__)


class CardService:
    """
    Card writes for a board. Bodies are resolved when they are written, so
    stored content already carries signed mention references and readers
    never need the directory. Cards keep a dense 0-based `row_order` within
    their board.
    """

    def __init__(
        self,
        boards: BoardRepository,
        directory: UserDirectory,
        resolver: MentionResolver,
        indexer: Optional[CardIndexer] = None,
    ):
        self.boards = boards
        self.directory = directory
        self.resolver = resolver
        self.indexer = indexer or NoopCardIndexer()

    def create_card(self, board_id: str, title: str, body: str = "") -> CardRecord:
        self._require_board(board_id)
        siblings = self.boards.list_cards(board_id)
        card = CardRecord(
            id=uuid.uuid4().hex,
            board_id=board_id,
            title=title,
            body=self.resolver.resolve(body, self.directory),
            row_order=len(siblings),
        )
        self.boards.save_card(card)
        self.indexer.index_card(card)
        logger.info("Created card %s on board %s", card.id, board_id)
        return card

    def update_card(
        self,
        board_id: str,
        card_id: str,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> CardRecord:
        card = self._require_card(board_id, card_id)
        if title is not None:
            card.title = title
        if body is not None:
            card.body = self.resolver.resolve(body, self.directory)
        card.updated_at = datetime.utcnow()
        self.boards.save_card(card)
        self.indexer.index_card(card)
        return card

    def move_card(self, board_id: str, card_id: str, position: Union[int, str, MovePosition]) -> CardRecord:
        """
        Set a card's position among its siblings. `position` is a 0-based
        index (clamped into range) or one of first/last/up/down.
        """
        card = self._require_card(board_id, card_id)
        cards = self.boards.list_cards(board_id)
        current = next((i for i, c in enumerate(cards) if c.id == card.id), 0)
        siblings = [c for c in cards if c.id != card.id]
        target = self._target_index(position, current, len(siblings))

        ordered: List[CardRecord] = siblings[:target] + [card] + siblings[target:]
        moved = card
        for index, sibling in enumerate(ordered):
            if sibling.row_order == index and sibling.id != card.id:
                continue
            updated = replace(sibling, row_order=index)
            if sibling.id == card.id:
                updated.updated_at = datetime.utcnow()
                moved = updated
            self.boards.save_card(updated)
            self.indexer.index_card(updated)
        logger.info("Moved card %s on board %s to position %s", card_id, board_id, moved.row_order)
        return moved

    def delete_card(self, board_id: str, card_id: str) -> None:
        self._require_card(board_id, card_id)
        self.boards.delete_card(card_id)
        self.indexer.delete_card(card_id)
        for index, sibling in enumerate(self.boards.list_cards(board_id)):
            if sibling.row_order != index:
                sibling.row_order = index
                self.boards.save_card(sibling)
                self.indexer.index_card(sibling)

    def _target_index(self, position: Union[int, str, MovePosition], current: int, sibling_count: int) -> int:
        if isinstance(position, bool):
            raise ValueError(f"Invalid position: {position!r}")
        if isinstance(position, int):
            return max(0, min(position, sibling_count))
        if isinstance(position, MovePosition):
            named = position
        else:
            raw = str(position).strip().lower()
            if raw.lstrip("-").isdigit():
                return max(0, min(int(raw), sibling_count))
            try:
                named = MovePosition(raw)
            except ValueError:
                raise ValueError(f"Invalid position: {position!r}") from None
        if named == MovePosition.FIRST:
            return 0
        if named == MovePosition.LAST:
            return sibling_count
        if named == MovePosition.UP:
            return max(0, current - 1)
        return min(sibling_count, current + 1)

    def _require_board(self, board_id: str) -> BoardRecord:
        board = self.boards.get_board(board_id)
        if not board:
            raise LookupError(f"Board {board_id} not found")
        return board

    def _require_card(self, board_id: str, card_id: str) -> CardRecord:
        self._require_board(board_id)
        card = self.boards.get_card(card_id)
        if not card or card.board_id != board_id:
            raise LookupError(f"Card {card_id} not found on board {board_id}")
        return card
