from supabase import Client
from proske.config import settings
from proske.core.dependencies import check_community_access, is_admin, is_teacher_or_admin
from proske.modules.events.schemas import (
    EventCreate, EventUpdate, StudyCreate, StudyComplete, StudyReschedule,
    ScheduledEvent, IndividualStudy, ParticipantResponse, MyEventsResponse,
    INDIVIDUAL_STUDY, event_from_row
)
from proske.modules.profiles.service import ProfileService
from typing import List, Optional, Iterable, Set
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def is_past(event_row: dict, now: Optional[datetime] = None) -> bool:
    return parse_timestamp(event_row["event_date"]) <= (now or datetime.now(timezone.utc))


def split_upcoming_past(events: Iterable, now: Optional[datetime] = None) -> MyEventsResponse:
    """Upcoming sorted soonest first, past sorted most recent first"""
    now = now or datetime.now(timezone.utc)
    upcoming, past = [], []
    for event in events:
        (upcoming if parse_timestamp(event.event_date) > now else past).append(event)
    upcoming.sort(key=lambda e: parse_timestamp(e.event_date))
    past.sort(key=lambda e: parse_timestamp(e.event_date), reverse=True)
    return MyEventsResponse(upcoming=upcoming, past=past)


class EventService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, event_id: str) -> dict:
        result = self.supabase.table("events")\
            .select("*")\
            .eq("id", event_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Event not found")
        return result.data[0]

    def _get_scheduled_row(self, event_id: str) -> dict:
        row = self._get_row(event_id)
        if row["event_type"] == INDIVIDUAL_STUDY:
            raise HTTPException(status_code=400, detail="Individual studies are managed through /studies")
        return row

    def _get_study_row(self, study_id: str, user_id: str) -> dict:
        row = self._get_row(study_id)
        if row["event_type"] != INDIVIDUAL_STUDY:
            raise HTTPException(status_code=404, detail="Study not found")
        if row["created_by"] != user_id:
            raise HTTPException(status_code=403, detail="Only the owner can manage this study")
        return row

    def _check_event_manager(self, row: dict, user_data: dict) -> None:
        if row["created_by"] != user_data["id"] and not is_teacher_or_admin(user_data):
            raise HTTPException(status_code=403, detail="Only the creator, teachers or admins can change this event")

    def _check_groups(self, community_id: str, group_ids: List[str], user_data: dict) -> None:
        """Groups must belong to the community; non-admins may only pick groups they are in"""
        result = self.supabase.table("conversation_groups")\
            .select("id, community_id")\
            .in_("id", group_ids)\
            .execute()
        found = {g["id"]: g["community_id"] for g in result.data}
        missing = [gid for gid in group_ids if found.get(gid) != community_id]
        if missing:
            raise HTTPException(status_code=400, detail=f"Groups not found in this community: {', '.join(missing)}")
        if is_admin(user_data):
            return
        memberships = self.supabase.table("group_members")\
            .select("group_id")\
            .eq("user_id", user_data["id"])\
            .in_("group_id", group_ids)\
            .execute()
        mine = {m["group_id"] for m in memberships.data}
        outside = [gid for gid in group_ids if gid not in mine]
        if outside:
            raise HTTPException(status_code=403, detail="You can only invite groups you are a member of")

    def _group_member_ids(self, group_ids: List[str]) -> Set[str]:
        """Distinct members of the given groups"""
        if not group_ids:
            return set()
        result = self.supabase.table("group_members")\
            .select("user_id")\
            .in_("group_id", group_ids)\
            .execute()
        return {m["user_id"] for m in result.data}

    def _event_groups(self, event_ids: List[str]) -> dict:
        """event_id -> (group ids, group names)"""
        if not event_ids:
            return {}
        links = self.supabase.table("event_groups")\
            .select("event_id, group_id")\
            .in_("event_id", event_ids)\
            .execute()
        group_ids = list({link["group_id"] for link in links.data})
        names = {}
        if group_ids:
            groups = self.supabase.table("conversation_groups")\
                .select("id, name")\
                .in_("id", group_ids)\
                .execute()
            names = {g["id"]: g["name"] for g in groups.data}
        mapping = {}
        for link in links.data:
            ids, group_names = mapping.setdefault(link["event_id"], ([], []))
            ids.append(link["group_id"])
            if link["group_id"] in names:
                group_names.append(names[link["group_id"]])
        return mapping

    def _to_view(self, rows: List[dict], statuses: Optional[dict] = None) -> list:
        groups = self._event_groups([r["id"] for r in rows if r["event_type"] != INDIVIDUAL_STUDY])
        views = []
        for row in rows:
            group_ids, group_names = groups.get(row["id"], ([], []))
            views.append(event_from_row(
                row,
                group_ids=group_ids,
                group_names=group_names,
                my_status=(statuses or {}).get(row["id"])
            ))
        return views

    def _sync_participants(self, event_id: str, group_ids: List[str]) -> dict:
        """Make participants exactly the members of the groups; existing answers are kept"""
        wanted = self._group_member_ids(group_ids)
        existing = self.supabase.table("event_participants")\
            .select("user_id")\
            .eq("event_id", event_id)\
            .execute()
        current = {p["user_id"] for p in existing.data}

        removed = list(current - wanted)
        if removed:
            self.supabase.table("event_participants")\
                .delete()\
                .eq("event_id", event_id)\
                .in_("user_id", removed)\
                .execute()
        added = sorted(wanted - current)
        if added:
            self.supabase.table("event_participants").upsert(
                [{"event_id": event_id, "user_id": uid, "status": "pending", "google_calendar_invited": False}
                 for uid in added],
                on_conflict="event_id,user_id",
                ignore_duplicates=True
            ).execute()
        return {"added": len(added), "removed": len(removed)}

    def _replace_groups(self, event_id: str, group_ids: List[str]) -> None:
        self.supabase.table("event_groups")\
            .delete()\
            .eq("event_id", event_id)\
            .execute()
        self.supabase.table("event_groups")\
            .insert([{"event_id": event_id, "group_id": gid} for gid in group_ids])\
            .execute()

    # Scheduled events

    def create_event(self, community_id: str, event_data: EventCreate, user_data: dict) -> ScheduledEvent:
        """Create an event for the selected groups; every distinct member becomes a pending participant"""
        try:
            self._check_groups(community_id, event_data.group_ids, user_data)
            result = self.supabase.table("events").insert({
                "title": event_data.title,
                "description": event_data.description or None,
                "event_date": event_data.starts_at.isoformat(),
                "duration_minutes": event_data.duration_minutes or settings.default_event_duration_minutes,
                "created_by": user_data["id"],
                "community_id": community_id,
                "event_type": event_data.event_type,
                "social_media_link": event_data.social_media_link
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create event")
            event = result.data[0]

            self._replace_groups(event["id"], event_data.group_ids)
            counts = self._sync_participants(event["id"], event_data.group_ids)
            logger.info(f"Event {event['id']} created with {counts['added']} participant(s)")
            return self._to_view([event])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_event(self, event_id: str, event_data: EventUpdate, user_data: dict) -> ScheduledEvent:
        """Update the event, replace its groups and recompute participants.

        Each step converges to the requested state, so the whole call can be
        retried after a failure half way.
        """
        try:
            row = self._get_scheduled_row(event_id)
            self._check_event_manager(row, user_data)
            if is_past(row):
                raise HTTPException(status_code=400, detail="Past events cannot be edited")
            self._check_groups(row["community_id"], event_data.group_ids, user_data)

            update_data = {
                "title": event_data.title,
                "description": event_data.description or None,
                "event_date": event_data.starts_at.isoformat(),
                "social_media_link": event_data.social_media_link,
                "updated_at": datetime.now(timezone.utc).isoformat()
            }
            if event_data.event_type:
                update_data["event_type"] = event_data.event_type
            if event_data.duration_minutes:
                update_data["duration_minutes"] = event_data.duration_minutes
            result = self.supabase.table("events")\
                .update(update_data)\
                .eq("id", event_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Event not found")

            self._replace_groups(event_id, event_data.group_ids)
            counts = self._sync_participants(event_id, event_data.group_ids)
            logger.info(f"Event {event_id} updated: +{counts['added']} -{counts['removed']} participant(s)")
            return self._to_view(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_event(self, event_id: str, user_data: dict) -> bool:
        try:
            row = self._get_scheduled_row(event_id)
            self._check_event_manager(row, user_data)
            for table in ("event_participants", "event_groups"):
                self.supabase.table(table)\
                    .delete()\
                    .eq("event_id", event_id)\
                    .execute()
            self.supabase.table("events")\
                .delete()\
                .eq("id", event_id)\
                .execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_event(self, event_id: str, user_id: str):
        try:
            row = self._get_row(event_id)
            statuses = self._my_statuses(user_id, [event_id])
            return self._to_view([row], statuses)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _my_statuses(self, user_id: str, event_ids: Optional[List[str]] = None) -> dict:
        query = self.supabase.table("event_participants")\
            .select("event_id, status")\
            .eq("user_id", user_id)
        if event_ids is not None:
            if not event_ids:
                return {}
            query = query.in_("event_id", event_ids)
        return {p["event_id"]: p["status"] for p in query.execute().data}

    def list_community_events(self, community_id: str, user_data: dict) -> list:
        """Scheduled events of the community plus the caller's own studies in it"""
        check_community_access(community_id, user_data, self.supabase)
        user_id = user_data["id"]
        try:
            result = self.supabase.table("events")\
                .select("*")\
                .eq("community_id", community_id)\
                .order("event_date")\
                .execute()
            rows = [
                r for r in result.data
                if r["event_type"] != INDIVIDUAL_STUDY or r["created_by"] == user_id
            ]
            return self._to_view(rows, self._my_statuses(user_id, [r["id"] for r in rows]))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def my_events(self, user_id: str, now: Optional[datetime] = None) -> MyEventsResponse:
        """Events the user is invited to and their studies, split into upcoming and past"""
        try:
            statuses = self._my_statuses(user_id)
            rows = []
            if statuses:
                invited = self.supabase.table("events")\
                    .select("*")\
                    .in_("id", list(statuses))\
                    .execute()
                rows.extend(invited.data)
            studies = self.supabase.table("events")\
                .select("*")\
                .eq("created_by", user_id)\
                .eq("event_type", INDIVIDUAL_STUDY)\
                .execute()
            rows.extend(studies.data)
            return split_upcoming_past(self._to_view(rows, statuses), now)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_participants(self, event_id: str) -> List[ParticipantResponse]:
        try:
            self._get_scheduled_row(event_id)
            result = self.supabase.table("event_participants")\
                .select("user_id, status")\
                .eq("event_id", event_id)\
                .execute()
            profiles = ProfileService(self.supabase).get_profiles_by_ids([p["user_id"] for p in result.data])
            return [
                ParticipantResponse(
                    user_id=p["user_id"],
                    status=p["status"],
                    name=profiles.get(p["user_id"], {}).get("name"),
                    avatar_url=profiles.get(p["user_id"], {}).get("avatar_url")
                )
                for p in result.data
            ]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def rsvp(self, event_id: str, user_id: str, status: str) -> ParticipantResponse:
        """Accept or decline an invitation; past events are read-only"""
        try:
            row = self._get_scheduled_row(event_id)
            participant = self.supabase.table("event_participants")\
                .select("id")\
                .eq("event_id", event_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            if not participant.data:
                raise HTTPException(status_code=403, detail="You are not a participant of this event")
            if is_past(row):
                raise HTTPException(status_code=400, detail="Past events are read-only")
            self.supabase.table("event_participants")\
                .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", participant.data[0]["id"])\
                .execute()
            return ParticipantResponse(user_id=user_id, status=status)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Individual studies

    def create_study(self, community_id: str, study_data: StudyCreate, user_data: dict) -> IndividualStudy:
        try:
            community = self.supabase.table("communities")\
                .select("id")\
                .eq("id", community_id)\
                .limit(1)\
                .execute()
            if not community.data:
                raise HTTPException(status_code=404, detail="Community not found")
            check_community_access(community_id, user_data, self.supabase)
            topic = study_data.study_topic.strip()
            result = self.supabase.table("events").insert({
                "title": "Estudo Individual",
                "description": study_data.description or topic,
                "event_date": study_data.starts_at.isoformat(),
                "duration_minutes": study_data.duration_minutes,
                "event_type": INDIVIDUAL_STUDY,
                "study_topic": topic,
                "study_status": "pending",
                "created_by": user_data["id"],
                "community_id": community_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create study")
            return event_from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def complete_study(self, study_id: str, complete_data: StudyComplete, user_id: str) -> IndividualStudy:
        """pending/rescheduled -> completed, recording the actual times and notes"""
        try:
            row = self._get_study_row(study_id, user_id)
            if row.get("study_status") == "completed":
                raise HTTPException(status_code=409, detail="Study is already completed")
            result = self.supabase.table("events").update({
                "study_status": "completed",
                "actual_start_time": complete_data.actual_start_time.isoformat(),
                "actual_end_time": complete_data.actual_end_time.isoformat(),
                "actual_study_notes": complete_data.actual_study_notes.strip(),
                "updated_at": datetime.now(timezone.utc).isoformat()
            }).eq("id", study_id).execute()
            return event_from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def reschedule_study(self, study_id: str, reschedule_data: StudyReschedule, user_id: str) -> IndividualStudy:
        """Move the study and mark it rescheduled"""
        try:
            row = self._get_study_row(study_id, user_id)
            if row.get("study_status") == "completed":
                raise HTTPException(status_code=409, detail="Completed studies cannot be rescheduled")
            result = self.supabase.table("events").update({
                "event_date": reschedule_data.starts_at.isoformat(),
                "study_status": "rescheduled",
                "updated_at": datetime.now(timezone.utc).isoformat()
            }).eq("id", study_id).execute()
            return event_from_row(result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_study(self, study_id: str, user_id: str) -> bool:
        """Cancelling a study deletes it"""
        try:
            self._get_study_row(study_id, user_id)
            self.supabase.table("events")\
                .delete()\
                .eq("id", study_id)\
                .eq("event_type", INDIVIDUAL_STUDY)\
                .execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
