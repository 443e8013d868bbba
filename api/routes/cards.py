from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException

from api.dependencies import get_indexer

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("/search")
def search_cards(query: str, board_id: Optional[str] = None, limit: int = 20):
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")
    hits = get_indexer().search(query, board_id=board_id, limit=limit)
    return {
        "hits": [
            {
                "card_id": hit.get("card_id"),
                "board_id": hit.get("board_id"),
                "row_order": int(hit.get("row_order") or 0),
                "title": hit.get("title") or "",
                "text": hit.get("text") or "",
            }
            for hit in hits
        ]
    }
