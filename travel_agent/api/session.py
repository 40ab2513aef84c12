"""Endpoints for inspecting and ending the caller's session"""

from typing import Any, Dict
from fastapi import APIRouter, Depends, HTTPException

from travel_agent.api.chat import get_session_id
from travel_agent.core.session_manager import session_manager

router = APIRouter(prefix="/session", tags=["session"])


@router.get("/info")
async def get_session_info(session_id: str = Depends(get_session_id)) -> Dict[str, Any]:
    """Summary of the caller's session and current chat"""
    session = await session_manager.get_or_create_session(session_id)
    return session.summary()


@router.delete("/")
async def destroy_session(session_id: str = Depends(get_session_id)) -> Dict[str, Any]:
    """Drops the caller's session together with its conversation"""
    if not await session_manager.destroy_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"message": "Session destroyed", "session_id": session_id}
