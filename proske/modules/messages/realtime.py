"""
Live message feed for a conversation group.

Wraps a Supabase Realtime channel subscribed to INSERT events on `messages`
filtered by group. Delivery is at-most-once: events that happen while no
channel is joined (e.g. after a dropped connection) are not replayed, so a
client that reconnects should refetch the message list to fill gaps.
"""
import asyncio
import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from proske.database.supabase_client import SupabaseClient, get_supabase
from proske.modules.auth.service import AuthService
from proske.core.dependencies import check_group_access, get_user_roles
from proske.modules.messages.service import to_message_response
from proske.modules.profiles.service import ProfileService
from fastapi import HTTPException

logger = logging.getLogger(__name__)

# Close codes sent to the websocket client
CLOSE_UNAUTHORIZED = 4001
CLOSE_FORBIDDEN = 4003
CLOSE_NOT_FOUND = 4004


def extract_record(payload: dict) -> Optional[dict]:
    """Row of a postgres_changes INSERT callback payload"""
    data = payload.get("data") or {}
    return data.get("record") or payload.get("new")


class GroupMessageFeed:
    """Bridges one realtime channel to an asyncio queue"""

    def __init__(self, group_id: str):
        self.group_id = group_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.channel = None
        self.client = None

    def _on_insert(self, payload: dict) -> None:
        record = extract_record(payload)
        if record:
            self.queue.put_nowait(record)

    async def start(self) -> None:
        self.client = await SupabaseClient.get_async_client()
        self.channel = self.client.channel(f"group-messages-{self.group_id}")
        self.channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table="messages",
            filter=f"group_id=eq.{self.group_id}",
            callback=self._on_insert
        )
        await self.channel.subscribe()
        logger.info(f"Subscribed to live messages of group {self.group_id}")

    async def stop(self) -> None:
        if self.channel is not None and self.client is not None:
            try:
                await self.client.remove_channel(self.channel)
            except Exception as e:
                logger.warning(f"Failed to remove realtime channel for group {self.group_id}: {e}")
        self.channel = None

    async def next_record(self) -> dict:
        return await self.queue.get()


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Incoming frames are ignored; the loop only ends when the client goes away
    while True:
        await websocket.receive_text()


def authorize_feed(supabase, group_id: str, token: str) -> dict:
    """Resolve the token and check group access; runs off the event loop"""
    user_data = AuthService(supabase).get_current_user(token)
    user_data = {**user_data, "roles": get_user_roles(user_data["id"], supabase)}
    check_group_access(group_id, user_data, supabase)
    return user_data


async def stream_group_messages(websocket: WebSocket, group_id: str, token: Optional[str]) -> None:
    """Authenticate with ?token=<access token>, then push every new group message as JSON"""
    supabase = get_supabase()
    if not token:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return
    try:
        await asyncio.to_thread(authorize_feed, supabase, group_id, token)
    except HTTPException as e:
        code = {401: CLOSE_UNAUTHORIZED, 404: CLOSE_NOT_FOUND}.get(e.status_code, CLOSE_FORBIDDEN)
        await websocket.close(code=code)
        return

    await websocket.accept()
    feed = GroupMessageFeed(group_id)
    profiles = ProfileService(supabase)
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        await feed.start()
        while True:
            next_record = asyncio.create_task(feed.next_record())
            done, _ = await asyncio.wait({receiver, next_record}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                next_record.cancel()
                break
            record = next_record.result()
            authors = await asyncio.to_thread(profiles.get_profiles_by_ids, [record["user_id"]])
            author = authors.get(record["user_id"])
            message = to_message_response(record, author)
            await websocket.send_text(message.model_dump_json())
    except WebSocketDisconnect:
        pass
    finally:
        receiver.cancel()
        await feed.stop()
        logger.info(f"Live feed client left group {group_id}")
