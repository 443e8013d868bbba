from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from cardboard.richtext import UserRecord

from api.dependencies import build_user_id, get_directory

router = APIRouter(prefix="/users", tags=["users"])


class UserCreate(BaseModel):
    username: str
    display_name: Optional[str] = None


def _user_payload(user: UserRecord) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
    }


@router.get("")
def list_users(query: Optional[str] = None):
    """
    Directory listing backing the mention picker. Matches are substring and
    case-insensitive, ordered by username.
    """
    directory = get_directory()
    users = directory.find_matching(query) if query else directory.list_users()
    return [_user_payload(u) for u in users]


@router.post("", status_code=201)
def create_user(payload: UserCreate):
    username = payload.username.strip()
    if not username or not username.replace("_", "").isalnum():
        raise HTTPException(status_code=400, detail="Username must be letters, digits or underscores")
    directory = get_directory()
    if directory.find_by_username(username):
        raise HTTPException(status_code=409, detail=f"User already exists: {username}")
    user = UserRecord(id=build_user_id(), username=username, display_name=payload.display_name)
    directory.save_user(user)
    return _user_payload(user)


@router.get("/{user_id}")
def get_user(user_id: str):
    user = get_directory().get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"User not found: {user_id}")
    return _user_payload(user)
