from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from cardboard.richtext import AttachmentCodec, BoardRecord, CardRecord

from api.dependencies import build_board_id, get_boards, get_card_service, get_directory, get_resolver

router = APIRouter(prefix="/boards", tags=["boards"])


class BoardCreate(BaseModel):
    name: str


class CardCreate(BaseModel):
    title: str
    body: str = ""


class CardUpdate(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None


class CardMove(BaseModel):
    row_order_position: Union[int, str]


def _board_payload(board: BoardRecord) -> dict:
    return {"id": board.id, "name": board.name}


def _card_payload(card: CardRecord, codec: Optional[AttachmentCodec] = None) -> dict:
    payload = {
        "id": card.id,
        "board_id": card.board_id,
        "title": card.title,
        "body": card.body,
        "row_order": card.row_order,
    }
    if codec is not None:
        directory = get_directory()
        mentions = []
        for ref in codec.extract(card.body):
            user = codec.locate(ref.sgid, directory)
            mentions.append({"user_id": user.id if user else None, "content": ref.content})
        payload["mentions"] = mentions
    return payload


@router.get("")
def list_boards():
    return [_board_payload(b) for b in get_boards().list_boards()]


@router.post("", status_code=201)
def create_board(payload: BoardCreate):
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Board name must not be empty")
    repo = get_boards()
    board_id = build_board_id(name)
    if repo.get_board(board_id):
        raise HTTPException(status_code=409, detail=f"Board already exists: {board_id}")
    board = BoardRecord(id=board_id, name=name)
    repo.save_board(board)
    return _board_payload(board)


@router.get("/{board_id}")
def get_board(board_id: str):
    repo = get_boards()
    board = repo.get_board(board_id)
    if not board:
        raise HTTPException(status_code=404, detail=f"Board not found: {board_id}")
    codec = get_resolver().codec
    return {
        **_board_payload(board),
        "cards": [_card_payload(c, codec) for c in repo.list_cards(board_id)],
    }


@router.post("/{board_id}/cards", status_code=201)
def create_card(board_id: str, payload: CardCreate):
    try:
        card = get_card_service().create_card(board_id, payload.title, payload.body)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _card_payload(card, get_resolver().codec)


@router.patch("/{board_id}/cards/{card_id}")
def update_card(board_id: str, card_id: str, payload: CardUpdate):
    try:
        card = get_card_service().update_card(board_id, card_id, title=payload.title, body=payload.body)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _card_payload(card, get_resolver().codec)


@router.patch("/{board_id}/cards/{card_id}/position")
def move_card(board_id: str, card_id: str, payload: CardMove):
    try:
        card = get_card_service().move_card(board_id, card_id, payload.row_order_position)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _card_payload(card, get_resolver().codec)


@router.delete("/{board_id}/cards/{card_id}", status_code=204)
def delete_card(board_id: str, card_id: str):
    try:
        get_card_service().delete_card(board_id, card_id)
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
