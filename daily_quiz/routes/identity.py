# FILE: daily_quiz/routes/identity.py
"""
Caller identity from the session collaborator's headers

Role tagging only: X-Admin-Id wins over X-Player-Id, which wins over a
guest token (header or request body).
"""
from typing import Optional
from fastapi import Depends, Header, HTTPException

from daily_quiz.models.attempts import Identity


def optional_identity(
    x_player_id: Optional[str] = Header(None),
    x_guest_token: Optional[str] = Header(None),
    x_admin_id: Optional[str] = Header(None)
) -> Optional[Identity]:
    if x_admin_id:
        return Identity(id=x_admin_id, role="admin")
    if x_player_id:
        return Identity(id=x_player_id, role="player")
    if x_guest_token:
        return Identity(id=x_guest_token, role="guest")
    return None


def resolve_identity(identity: Optional[Identity], guest_token: Optional[str] = None) -> Identity:
    """Header identity, else the body guest token, else 401"""
    if identity is not None:
        return identity
    if guest_token:
        return Identity(id=guest_token, role="guest")
    raise HTTPException(status_code=401, detail="Missing player identity")


def require_identity(identity: Optional[Identity] = Depends(optional_identity)) -> Identity:
    return resolve_identity(identity)


def require_admin(identity: Optional[Identity] = Depends(optional_identity)) -> Identity:
    if identity is None or not identity.is_admin:
        raise HTTPException(status_code=403, detail="Admin identity required")
    return identity
