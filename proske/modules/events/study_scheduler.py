import asyncio
import logging
from datetime import datetime, date, time, timedelta, timezone
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from supabase import Client
from proske.config import settings
from proske.database.supabase_client import get_service_supabase
from proske.modules.events.schemas import INDIVIDUAL_STUDY, ScheduledStudiesResult
from proske.modules.profiles.schemas import StudyScheduleSlot

logger = logging.getLogger(__name__)

_schedule_adapter = TypeAdapter(List[StudyScheduleSlot])

DEFAULT_STUDY_TITLE = "Estudo Individual"
DEFAULT_STUDY_DESCRIPTION = "Estudo agendado automaticamente"
DEFAULT_STUDY_TOPIC = "Estudo programado"


def js_day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def plan_study_slots(schedule: List[StudyScheduleSlot], now: datetime, days_ahead: int) -> List[tuple]:
    """(start datetime, slot) for every slot in the next days_ahead days that is still in the future"""
    planned = []
    for offset in range(days_ahead):
        day = (now + timedelta(days=offset)).date()
        for slot in schedule:
            if slot.day_of_week != js_day_of_week(day):
                continue
            hours, minutes = (int(part) for part in slot.time.split(":"))
            starts_at = datetime.combine(day, time(hours, minutes), tzinfo=now.tzinfo or timezone.utc)
            if starts_at <= now:
                continue
            planned.append((starts_at, slot))
    return planned


def _first_community(supabase: Client, user_id: str) -> Optional[str]:
    result = supabase.table("community_members")\
        .select("community_id")\
        .eq("user_id", user_id)\
        .order("joined_at")\
        .limit(1)\
        .execute()
    return result.data[0]["community_id"] if result.data else None


def _study_exists(supabase: Client, user_id: str, starts_at: datetime) -> bool:
    """A study of the user already starts within the same minute"""
    result = supabase.table("events")\
        .select("id")\
        .eq("created_by", user_id)\
        .eq("event_type", INDIVIDUAL_STUDY)\
        .gte("event_date", starts_at.isoformat())\
        .lt("event_date", (starts_at + timedelta(minutes=1)).isoformat())\
        .limit(1)\
        .execute()
    return bool(result.data)


def create_scheduled_studies(
    supabase: Client,
    now: Optional[datetime] = None,
    days_ahead: Optional[int] = None
) -> ScheduledStudiesResult:
    """Create the upcoming individual studies of every profile with a weekly study schedule"""
    now = now or datetime.now(timezone.utc)
    days_ahead = days_ahead or settings.study_schedule_days_ahead
    logger.info("Starting scheduled studies creation")

    profiles = supabase.table("profiles")\
        .select("id, study_schedule")\
        .not_.is_("study_schedule", "null")\
        .execute()
    if not profiles.data:
        logger.info("No profiles with study schedules found")
        return ScheduledStudiesResult(
            message="No profiles with study schedules found",
            total_created=0,
            profiles_processed=0
        )

    total_created = 0
    for profile in profiles.data:
        user_id = profile["id"]
        try:
            try:
                schedule = _schedule_adapter.validate_python(profile.get("study_schedule") or [])
            except ValidationError:
                logger.warning(f"Skipping user {user_id} - invalid study schedule")
                continue
            if not schedule:
                continue

            community_id = _first_community(supabase, user_id)
            if not community_id:
                logger.info(f"Skipping user {user_id} - no community membership")
                continue

            studies = []
            for starts_at, slot in plan_study_slots(schedule, now, days_ahead):
                if _study_exists(supabase, user_id, starts_at):
                    continue
                studies.append({
                    "title": DEFAULT_STUDY_TITLE,
                    "description": slot.topic or DEFAULT_STUDY_DESCRIPTION,
                    "event_date": starts_at.isoformat(),
                    "duration_minutes": settings.default_event_duration_minutes,
                    "event_type": INDIVIDUAL_STUDY,
                    "study_topic": slot.topic or DEFAULT_STUDY_TOPIC,
                    "study_status": "pending",
                    "created_by": user_id,
                    "community_id": community_id
                })

            if studies:
                supabase.table("events").insert(studies).execute()
                total_created += len(studies)
                logger.info(f"Created {len(studies)} studies for user {user_id}")
        except Exception as e:
            logger.error(f"Error processing user {user_id}: {str(e)}")

    logger.info(f"Total studies created: {total_created}")
    return ScheduledStudiesResult(
        message="Scheduled studies created successfully",
        total_created=total_created,
        profiles_processed=len(profiles.data)
    )


async def study_scheduler_loop():
    """Background task that periodically creates scheduled studies"""
    while True:
        try:
            await asyncio.to_thread(create_scheduled_studies, get_service_supabase())
        except Exception as e:
            logger.error(f"Error in study scheduler loop: {str(e)}")

        await asyncio.sleep(settings.study_scheduler_interval_seconds)
