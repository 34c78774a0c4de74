from fastapi import APIRouter, Depends
from proske.database.supabase_client import get_supabase, get_service_supabase
from proske.modules.events.schemas import (
    EventCreate, EventUpdate, EventView, RSVPRequest, ParticipantResponse, MyEventsResponse,
    StudyCreate, StudyComplete, StudyReschedule, ScheduledEvent, IndividualStudy, ScheduledStudiesResult
)
from proske.modules.events.service import EventService
from proske.modules.events.study_scheduler import create_scheduled_studies
from proske.core.dependencies import get_current_user, get_current_user_id, require_capability
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/events", tags=["events"])
community_router = APIRouter(prefix="/communities", tags=["events"])
studies_router = APIRouter(prefix="/studies", tags=["studies"])
functions_router = APIRouter(prefix="/functions", tags=["functions"])


def get_event_service(supabase: Client = Depends(get_supabase)) -> EventService:
    return EventService(supabase)


@community_router.post("/{community_id}/events", response_model=ScheduledEvent, status_code=201)
async def create_event(
    community_id: str,
    event_data: EventCreate,
    user_data: Dict = Depends(require_capability("events:create")),
    service: EventService = Depends(get_event_service)
):
    """Create an event for one or more groups (teachers and admins)"""
    return service.create_event(community_id, event_data, user_data)


@community_router.get("/{community_id}/events", response_model=List[EventView])
async def list_community_events(
    community_id: str,
    user_data: Dict = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Events of a community and the caller's own studies in it"""
    return service.list_community_events(community_id, user_data)


@community_router.post("/{community_id}/studies", response_model=IndividualStudy, status_code=201)
async def create_study(
    community_id: str,
    study_data: StudyCreate,
    user_data: Dict = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Schedule an individual study session"""
    return service.create_study(community_id, study_data, user_data)


@router.get("/mine", response_model=MyEventsResponse)
async def my_events(
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    """The caller's events split into upcoming and past"""
    return service.my_events(user_data["id"])


@router.get("/{event_id}", response_model=EventView)
async def get_event(
    event_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    return service.get_event(event_id, user_data["id"])


@router.put("/{event_id}", response_model=ScheduledEvent)
async def update_event(
    event_id: str,
    event_data: EventUpdate,
    user_data: Dict = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    """Edit an upcoming event; groups and participants are recomputed (creator, teachers and admins)"""
    return service.update_event(event_id, event_data, user_data)


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: str,
    user_data: Dict = Depends(get_current_user),
    service: EventService = Depends(get_event_service)
):
    service.delete_event(event_id, user_data)
    return None


@router.get("/{event_id}/participants", response_model=List[ParticipantResponse])
async def list_participants(
    event_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    return service.list_participants(event_id)


@router.post("/{event_id}/rsvp", response_model=ParticipantResponse)
async def rsvp(
    event_id: str,
    rsvp_data: RSVPRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    """Accept or decline an event invitation"""
    return service.rsvp(event_id, user_data["id"], rsvp_data.status)


@studies_router.post("/{study_id}/complete", response_model=IndividualStudy)
async def complete_study(
    study_id: str,
    complete_data: StudyComplete,
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    """Record how the study went"""
    return service.complete_study(study_id, complete_data, user_data["id"])


@studies_router.post("/{study_id}/reschedule", response_model=IndividualStudy)
async def reschedule_study(
    study_id: str,
    reschedule_data: StudyReschedule,
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    return service.reschedule_study(study_id, reschedule_data, user_data["id"])


@studies_router.delete("/{study_id}", status_code=204)
async def delete_study(
    study_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: EventService = Depends(get_event_service)
):
    """Cancel (delete) a study"""
    service.delete_study(study_id, user_data["id"])
    return None


@functions_router.post("/create-scheduled-studies", response_model=ScheduledStudiesResult)
async def run_scheduled_studies(
    user_data: Dict = Depends(require_capability("studies:schedule")),
    supabase: Client = Depends(get_service_supabase)
):
    """Create upcoming studies from every profile's weekly schedule (admin)"""
    return create_scheduled_studies(supabase)
