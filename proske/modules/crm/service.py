from supabase import Client
from proske.database.errors import is_unique_violation
from proske.modules.crm.schemas import (
    UNTAGGED_COLUMN_ID, TagCreate, TagUpdate, TagResponse, LeadCreate, LeadUpdate,
    CRMCard, KanbanColumn, NoteResponse
)
from proske.modules.profiles.service import ProfileService
from typing import List, Dict
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

UNTAGGED_COLUMN_NAME = "Sem Tag"
UNTAGGED_COLUMN_COLOR = "#6b7280"

# item type -> (link table, link column, owner table)
ITEM_TABLES = {
    "leads": ("lead_tags", "lead_id", "crm_leads"),
    "users": ("user_tags", "user_id", "profiles"),
}


def build_board(tags: List[dict], cards: List[CRMCard]) -> List[KanbanColumn]:
    """An untagged column followed by one column per tag; a card shows in every column of its tags"""
    columns = [KanbanColumn(
        id=UNTAGGED_COLUMN_ID,
        name=UNTAGGED_COLUMN_NAME,
        color=UNTAGGED_COLUMN_COLOR,
        items=[c for c in cards if not c.tag_ids]
    )]
    for tag in tags:
        columns.append(KanbanColumn(
            id=tag["id"],
            name=tag["name"],
            color=tag["color"],
            items=[c for c in cards if tag["id"] in c.tag_ids]
        ))
    return columns


class CRMService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _check_item(self, item_type: str, item_id: str) -> None:
        _, _, owner_table = ITEM_TABLES[item_type]
        result = self.supabase.table(owner_table)\
            .select("id")\
            .eq("id", item_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Lead not found" if item_type == "leads" else "User not found")

    def _check_tags(self, tag_ids: List[str]) -> None:
        if not tag_ids:
            return
        result = self.supabase.table("tags")\
            .select("id")\
            .in_("id", tag_ids)\
            .execute()
        missing = set(tag_ids) - {t["id"] for t in result.data}
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown tags: {', '.join(sorted(missing))}")

    def _item_tags(self, item_type: str) -> Dict[str, List[str]]:
        link_table, link_column, _ = ITEM_TABLES[item_type]
        result = self.supabase.table(link_table).select(f"{link_column}, tag_id").execute()
        tags: Dict[str, List[str]] = {}
        for link in result.data:
            tags.setdefault(link[link_column], []).append(link["tag_id"])
        return tags

    # Tags

    def list_tags(self) -> List[TagResponse]:
        try:
            result = self.supabase.table("tags")\
                .select("*")\
                .order("order_index")\
                .execute()
            return [TagResponse(**t) for t in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_tag(self, tag_data: TagCreate, user_id: str) -> TagResponse:
        """New tags go after the last one"""
        try:
            last = self.supabase.table("tags")\
                .select("order_index")\
                .order("order_index", desc=True)\
                .limit(1)\
                .execute()
            next_index = last.data[0]["order_index"] + 1 if last.data else 0
            result = self.supabase.table("tags").insert({
                "name": tag_data.name,
                "color": tag_data.color,
                "order_index": next_index,
                "created_by": user_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create tag")
            return TagResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create tag: {str(e)}")

    def update_tag(self, tag_id: str, tag_data: TagUpdate) -> TagResponse:
        try:
            update_data = tag_data.model_dump(exclude_none=True)
            if not update_data:
                raise HTTPException(status_code=400, detail="Nothing to update")
            result = self.supabase.table("tags")\
                .update(update_data)\
                .eq("id", tag_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Tag not found")
            return TagResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_tag(self, tag_id: str) -> bool:
        try:
            for link_table, _, _ in ITEM_TABLES.values():
                self.supabase.table(link_table).delete().eq("tag_id", tag_id).execute()
            result = self.supabase.table("tags").delete().eq("id", tag_id).execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Tag not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def reorder_tags(self, tag_ids: List[str]) -> List[TagResponse]:
        try:
            current = {t.id for t in self.list_tags()}
            if len(tag_ids) != len(set(tag_ids)) or set(tag_ids) != current:
                raise HTTPException(status_code=400, detail="Every tag must be listed exactly once")
            for index, tag_id in enumerate(tag_ids):
                self.supabase.table("tags").update({"order_index": index}).eq("id", tag_id).execute()
            return self.list_tags()
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Leads

    def list_leads(self) -> List[CRMCard]:
        try:
            result = self.supabase.table("crm_leads")\
                .select("*")\
                .order("created_at", desc=True)\
                .execute()
            tags = self._item_tags("leads")
            return [CRMCard(**lead, kind="lead", tag_ids=tags.get(lead["id"], [])) for lead in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_lead(self, lead_data: LeadCreate, user_id: str) -> CRMCard:
        try:
            tag_ids = list(dict.fromkeys(lead_data.tag_ids))
            self._check_tags(tag_ids)
            result = self.supabase.table("crm_leads").insert({
                **lead_data.model_dump(exclude={"tag_ids"}),
                "created_by": user_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create lead")
            lead = result.data[0]
            if tag_ids:
                self.supabase.table("lead_tags").insert(
                    [{"lead_id": lead["id"], "tag_id": tid} for tid in tag_ids]
                ).execute()
            return CRMCard(**lead, kind="lead", tag_ids=tag_ids)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create lead: {str(e)}")

    def update_lead(self, lead_id: str, lead_data: LeadUpdate) -> CRMCard:
        try:
            update_data = lead_data.model_dump(exclude_unset=True)
            if not update_data:
                raise HTTPException(status_code=400, detail="Nothing to update")
            result = self.supabase.table("crm_leads")\
                .update(update_data)\
                .eq("id", lead_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Lead not found")
            tags = self._item_tags("leads")
            return CRMCard(**result.data[0], kind="lead", tag_ids=tags.get(lead_id, []))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_lead(self, lead_id: str) -> bool:
        try:
            self._check_item("leads", lead_id)
            self.supabase.table("lead_tags").delete().eq("lead_id", lead_id).execute()
            self.supabase.table("crm_notes").delete().eq("lead_id", lead_id).execute()
            self.supabase.table("crm_leads").delete().eq("id", lead_id).execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Item tags

    def set_item_tags(self, item_type: str, item_id: str, tag_ids: List[str]) -> List[str]:
        """Replace every tag of a lead or user"""
        link_table, link_column, _ = ITEM_TABLES[item_type]
        try:
            self._check_item(item_type, item_id)
            tag_ids = list(dict.fromkeys(tag_ids))
            self._check_tags(tag_ids)
            self.supabase.table(link_table).delete().eq(link_column, item_id).execute()
            if tag_ids:
                self.supabase.table(link_table).insert(
                    [{link_column: item_id, "tag_id": tid} for tid in tag_ids]
                ).execute()
            return tag_ids
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_item_tag(self, item_type: str, item_id: str, tag_id: str) -> bool:
        """Add one tag (a kanban drop); returns False when the item already had it"""
        link_table, link_column, _ = ITEM_TABLES[item_type]
        try:
            self._check_item(item_type, item_id)
            self._check_tags([tag_id])
            try:
                self.supabase.table(link_table).insert({link_column: item_id, "tag_id": tag_id}).execute()
            except Exception as e:
                if is_unique_violation(e):
                    return False
                raise
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Notes

    def list_notes(self, item_type: str, item_id: str) -> List[NoteResponse]:
        _, link_column, _ = ITEM_TABLES[item_type]
        try:
            result = self.supabase.table("crm_notes")\
                .select("*")\
                .eq(link_column, item_id)\
                .order("created_at", desc=True)\
                .execute()
            authors = ProfileService(self.supabase).get_profiles_by_ids(
                list({n["created_by"] for n in result.data if n.get("created_by")})
            )
            return [
                NoteResponse(
                    **n,
                    author_name=(authors.get(n.get("created_by")) or {}).get("name"),
                    author_avatar=(authors.get(n.get("created_by")) or {}).get("avatar_url")
                )
                for n in result.data
            ]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_note(self, item_type: str, item_id: str, note: str, user_id: str) -> NoteResponse:
        _, link_column, _ = ITEM_TABLES[item_type]
        try:
            self._check_item(item_type, item_id)
            result = self.supabase.table("crm_notes").insert({
                link_column: item_id,
                "note": note,
                "created_by": user_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add note")
            return NoteResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Board

    def get_board(self) -> List[KanbanColumn]:
        try:
            tags = self.supabase.table("tags")\
                .select("*")\
                .order("order_index")\
                .execute().data
            profiles = self.supabase.table("profiles")\
                .select("id, name, email, phone, city, avatar_url")\
                .order("name")\
                .execute().data
            user_tags = self._item_tags("users")
            cards = [CRMCard(**p, kind="user", tag_ids=user_tags.get(p["id"], [])) for p in profiles]
            return build_board(tags, cards + self.list_leads())
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
