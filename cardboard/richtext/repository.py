from __future__ import annotations

from copy import deepcopy
from typing import Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, create_engine, delete, or_, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .models import BoardRecord, CardRecord, UserRecord

Base = declarative_base()


class UserModel(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True)
    username = Column(String)
    # Lower-cased in Python: SQLite lower() only folds ASCII.
    username_key = Column(String, unique=True, index=True)
    display_name = Column(String)
    display_name_key = Column(String)
    created_at = Column(DateTime)


class BoardModel(Base):
    __tablename__ = "boards"
    id = Column(String, primary_key=True)
    name = Column(String)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class CardModel(Base):
    __tablename__ = "cards"
    id = Column(String, primary_key=True)
    board_id = Column(String, index=True)
    title = Column(String)
    body = Column(String)
    row_order = Column(Integer)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)


class UserDirectory:
    """
    Lookup boundary for users. The mention resolver only needs
    `find_by_username`; the listing endpoint uses `find_matching`.
    Implementations must be safe for concurrent reads.
    """

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        raise NotImplementedError

    def save_user(self, user: UserRecord) -> None:
        raise NotImplementedError

    def list_users(self) -> List[UserRecord]:
        raise NotImplementedError

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        """Case-insensitive exact match. A missing user is None, never an error."""
        raise NotImplementedError

    def find_matching(self, query: str) -> List[UserRecord]:
        """Case-insensitive substring match on username or display name, ordered by username."""
        raise NotImplementedError


class BoardRepository:
    """
    Persistence boundary for boards and their cards.
    """

    def get_board(self, board_id: str) -> Optional[BoardRecord]:
        raise NotImplementedError

    def save_board(self, board: BoardRecord) -> None:
        raise NotImplementedError

    def list_boards(self) -> List[BoardRecord]:
        raise NotImplementedError

    def get_card(self, card_id: str) -> Optional[CardRecord]:
        raise NotImplementedError

    def save_card(self, card: CardRecord) -> None:
        raise NotImplementedError

    def list_cards(self, board_id: str) -> List[CardRecord]:
        raise NotImplementedError

    def delete_card(self, card_id: str) -> None:
        raise NotImplementedError


class InMemoryUserDirectory(UserDirectory):
    """
    Dict-backed directory for local runs and tests.
    """

    def __init__(self, users: Optional[List[UserRecord]] = None):
        self.users: Dict[str, UserRecord] = {}
        for user in users or []:
            self.save_user(user)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def save_user(self, user: UserRecord) -> None:
        self.users[user.id] = user

    def list_users(self) -> List[UserRecord]:
        return sorted(self.users.values(), key=lambda u: u.username.lower())

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        wanted = username.lower()
        for user in self.users.values():
            if user.username.lower() == wanted:
                return user
        return None

    def find_matching(self, query: str) -> List[UserRecord]:
        needle = (query or "").strip().lower()
        return [
            u
            for u in self.list_users()
            if needle in u.username.lower() or needle in (u.display_name or "").lower()
        ]


class InMemoryBoardRepository(BoardRepository):
    """
    In-memory board store. Keeps copies of dataclasses to avoid cross-mutation
    between calls.
    """

    def __init__(self):
        self.boards: Dict[str, BoardRecord] = {}
        self.cards: Dict[str, CardRecord] = {}

    def _clone(self, obj):
        return deepcopy(obj)

    def get_board(self, board_id: str) -> Optional[BoardRecord]:
        board = self.boards.get(board_id)
        return self._clone(board) if board else None

    def save_board(self, board: BoardRecord) -> None:
        self.boards[board.id] = self._clone(board)

    def list_boards(self) -> List[BoardRecord]:
        return [self._clone(b) for b in sorted(self.boards.values(), key=lambda b: b.created_at)]

    def get_card(self, card_id: str) -> Optional[CardRecord]:
        card = self.cards.get(card_id)
        return self._clone(card) if card else None

    def save_card(self, card: CardRecord) -> None:
        self.cards[card.id] = self._clone(card)

    def list_cards(self, board_id: str) -> List[CardRecord]:
        cards = [c for c in self.cards.values() if c.board_id == board_id]
        return [self._clone(c) for c in sorted(cards, key=lambda c: (c.row_order, c.created_at))]

    def delete_card(self, card_id: str) -> None:
        self.cards.pop(card_id, None)


def _to_user(model: UserModel) -> UserRecord:
    return UserRecord(
        id=model.id,
        username=model.username,
        display_name=model.display_name,
        created_at=model.created_at,
    )


def _to_card(model: CardModel) -> CardRecord:
    return CardRecord(
        id=model.id,
        board_id=model.board_id,
        title=model.title,
        body=model.body or "",
        row_order=int(model.row_order or 0),
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class SqlAlchemyStore:
    """
    Shared engine/session setup. Works with SQLite/Postgres URLs.
    """

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url, future=True)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    def _session(self) -> Session:
        return self.SessionLocal()


class SqlAlchemyUserDirectory(SqlAlchemyStore, UserDirectory):
    """
    SQL-backed directory. Lookups run against key columns lower-cased in
    Python, so matching agrees with the in-memory directory for any script
    and case-insensitive username uniqueness is enforced by the database.
    """

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._session() as session:
            model = session.get(UserModel, user_id)
            return _to_user(model) if model else None

    def save_user(self, user: UserRecord) -> None:
        with self._session() as session:
            session.merge(
                UserModel(
                    id=user.id,
                    username=user.username,
                    username_key=user.username.lower(),
                    display_name=user.display_name,
                    display_name_key=(user.display_name or "").lower(),
                    created_at=user.created_at,
                )
            )
            session.commit()

    def list_users(self) -> List[UserRecord]:
        with self._session() as session:
            stmt = select(UserModel).order_by(UserModel.username_key)
            return [_to_user(m) for m in session.execute(stmt).scalars().all()]

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        with self._session() as session:
            stmt = select(UserModel).where(UserModel.username_key == username.lower()).limit(1)
            model = session.execute(stmt).scalars().first()
            return _to_user(model) if model else None

    def find_matching(self, query: str) -> List[UserRecord]:
        needle = (query or "").strip()
        with self._session() as session:
            stmt = select(UserModel).order_by(UserModel.username_key)
            if needle:
                escaped = needle.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
                pattern = f"%{escaped}%"
                stmt = stmt.where(
                    or_(
                        UserModel.username_key.like(pattern, escape="\\"),
                        UserModel.display_name_key.like(pattern, escape="\\"),
                    )
                )
            return [_to_user(m) for m in session.execute(stmt).scalars().all()]


class SqlAlchemyBoardRepository(SqlAlchemyStore, BoardRepository):
    # region Board operations
    def get_board(self, board_id: str) -> Optional[BoardRecord]:
        with self._session() as session:
            model = session.get(BoardModel, board_id)
            if not model:
                return None
            return BoardRecord(
                id=model.id,
                name=model.name,
                created_at=model.created_at,
                updated_at=model.updated_at,
            )

    def save_board(self, board: BoardRecord) -> None:
        with self._session() as session:
            model = BoardModel(
                id=board.id,
                name=board.name,
                created_at=board.created_at,
                updated_at=board.updated_at,
            )
            session.merge(model)
            session.commit()

    def list_boards(self) -> List[BoardRecord]:
        with self._session() as session:
            stmt = select(BoardModel).order_by(BoardModel.created_at)
            return [
                BoardRecord(id=m.id, name=m.name, created_at=m.created_at, updated_at=m.updated_at)
                for m in session.execute(stmt).scalars().all()
            ]

    # endregion

    # region Card operations
    def get_card(self, card_id: str) -> Optional[CardRecord]:
        with self._session() as session:
            model = session.get(CardModel, card_id)
            return _to_card(model) if model else None

    def save_card(self, card: CardRecord) -> None:
        with self._session() as session:
            model = CardModel(
                id=card.id,
                board_id=card.board_id,
                title=card.title,
                body=card.body,
                row_order=card.row_order,
                created_at=card.created_at,
                updated_at=card.updated_at,
            )
            session.merge(model)
            session.commit()

    def list_cards(self, board_id: str) -> List[CardRecord]:
        with self._session() as session:
            stmt = (
                select(CardModel)
                .where(CardModel.board_id == board_id)
                .order_by(CardModel.row_order, CardModel.created_at)
            )
            return [_to_card(m) for m in session.execute(stmt).scalars().all()]

    def delete_card(self, card_id: str) -> None:
        with self._session() as session:
            session.execute(delete(CardModel).where(CardModel.id == card_id))
            session.commit()

    # endregion
