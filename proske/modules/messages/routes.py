from fastapi import APIRouter, Depends, Query, WebSocket
from proske.database.supabase_client import get_supabase
from proske.modules.messages.schemas import MessageCreate, MessageResponse, UnreadCountResponse, MarkReadResponse
from proske.modules.messages.service import MessageService
from proske.modules.messages.realtime import stream_group_messages
from proske.core.dependencies import get_current_user, check_group_access, is_group_member
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/groups", tags=["messages"])


def get_message_service(supabase: Client = Depends(get_supabase)) -> MessageService:
    return MessageService(supabase)


@router.get("/{group_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    group_id: str,
    limit: int = 200,
    user_data: Dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    """Messages of a group, oldest first (members, teachers and admins)"""
    check_group_access(group_id, user_data, supabase)
    return service.list_messages(group_id, limit=limit)


@router.post("/{group_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    group_id: str,
    message_data: MessageCreate,
    user_data: Dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    """Send a message to a group"""
    group = check_group_access(group_id, user_data, supabase)
    is_member = is_group_member(group_id, user_data["id"], supabase)
    return service.send_message(group, user_data, is_member, message_data)


@router.post("/{group_id}/read", response_model=MarkReadResponse)
async def mark_read(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    """Mark every message of the group as read"""
    check_group_access(group_id, user_data, supabase)
    return MarkReadResponse(group_id=group_id, marked=service.mark_read(group_id, user_data["id"]))


@router.get("/{group_id}/unread", response_model=UnreadCountResponse)
async def unread_count(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: MessageService = Depends(get_message_service),
    supabase: Client = Depends(get_supabase)
):
    """Number of unread messages in the group"""
    check_group_access(group_id, user_data, supabase)
    return UnreadCountResponse(group_id=group_id, unread_count=service.count_unread(group_id, user_data["id"]))


@router.websocket("/{group_id}/live")
async def live_messages(websocket: WebSocket, group_id: str, token: Optional[str] = Query(default=None)):
    """New group messages pushed as they are inserted (no replay of missed ones)"""
    await stream_group_messages(websocket, group_id, token)
