from fastapi import APIRouter, Depends
from proske.database.supabase_client import get_supabase
from proske.modules.crm.schemas import (
    ItemType, TagCreate, TagUpdate, TagResponse, TagOrderUpdate,
    LeadCreate, LeadUpdate, ItemTagsUpdate, CRMCard, KanbanColumn, NoteCreate, NoteResponse
)
from proske.modules.crm.service import CRMService
from proske.core.dependencies import require_capability
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/crm", tags=["crm"])

require_crm = require_capability("crm:manage")


def get_crm_service(supabase: Client = Depends(get_supabase)) -> CRMService:
    return CRMService(supabase)


@router.get("/tags", response_model=List[TagResponse])
async def list_tags(
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.list_tags()


@router.post("/tags", response_model=TagResponse, status_code=201)
async def create_tag(
    tag_data: TagCreate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.create_tag(tag_data, user_data["id"])


@router.put("/tags/order", response_model=List[TagResponse])
async def reorder_tags(
    order_data: TagOrderUpdate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    """Set the column order of the board"""
    return service.reorder_tags(order_data.tag_ids)


@router.put("/tags/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    tag_data: TagUpdate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.update_tag(tag_id, tag_data)


@router.delete("/tags/{tag_id}", status_code=204)
async def delete_tag(
    tag_id: str,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    service.delete_tag(tag_id)
    return None


@router.get("/leads", response_model=List[CRMCard])
async def list_leads(
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.list_leads()


@router.post("/leads", response_model=CRMCard, status_code=201)
async def create_lead(
    lead_data: LeadCreate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.create_lead(lead_data, user_data["id"])


@router.put("/leads/{lead_id}", response_model=CRMCard)
async def update_lead(
    lead_id: str,
    lead_data: LeadUpdate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.update_lead(lead_id, lead_data)


@router.delete("/leads/{lead_id}", status_code=204)
async def delete_lead(
    lead_id: str,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    service.delete_lead(lead_id)
    return None


@router.get("/board", response_model=List[KanbanColumn])
async def get_board(
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    """Kanban columns of users and leads by tag"""
    return service.get_board()


@router.put("/{item_type}/{item_id}/tags", response_model=List[str])
async def set_item_tags(
    item_type: ItemType,
    item_id: str,
    tags_data: ItemTagsUpdate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    """Replace the tags of a lead or user"""
    return service.set_item_tags(item_type, item_id, tags_data.tag_ids)


@router.post("/{item_type}/{item_id}/tags/{tag_id}")
async def add_item_tag(
    item_type: ItemType,
    item_id: str,
    tag_id: str,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    """Add a single tag; adding one the item already has is a no-op"""
    return {"added": service.add_item_tag(item_type, item_id, tag_id)}


@router.get("/{item_type}/{item_id}/notes", response_model=List[NoteResponse])
async def list_notes(
    item_type: ItemType,
    item_id: str,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.list_notes(item_type, item_id)


@router.post("/{item_type}/{item_id}/notes", response_model=NoteResponse, status_code=201)
async def add_note(
    item_type: ItemType,
    item_id: str,
    note_data: NoteCreate,
    user_data: Dict = Depends(require_crm),
    service: CRMService = Depends(get_crm_service)
):
    return service.add_note(item_type, item_id, note_data.note, user_data["id"])
