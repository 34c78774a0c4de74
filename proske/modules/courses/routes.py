from fastapi import APIRouter, Depends
from proske.database.supabase_client import get_supabase
from proske.modules.courses.schemas import (
    CourseCreate, CourseUpdate, CourseResponse,
    ModuleCreate, ModuleUpdate, ModuleResponse,
    LessonCreate, LessonUpdate, LessonResponse, ReorderRequest,
    CourseOutline, LessonProgressUpdate, LessonProgressResponse,
    CourseAccessGrant, CourseAccessResponse
)
from proske.modules.courses.service import CourseService
from proske.core.dependencies import get_current_user, require_capability, is_teacher_or_admin
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/courses", tags=["courses"])
community_router = APIRouter(prefix="/communities", tags=["courses"])
modules_router = APIRouter(prefix="/modules", tags=["courses"])
lessons_router = APIRouter(prefix="/lessons", tags=["courses"])


def get_course_service(supabase: Client = Depends(get_supabase)) -> CourseService:
    return CourseService(supabase)


@community_router.post("/{community_id}/courses", response_model=CourseResponse, status_code=201)
async def create_course(
    community_id: str,
    course_data: CourseCreate,
    user_data: Dict = Depends(require_capability("courses:create")),
    service: CourseService = Depends(get_course_service)
):
    """Create a course (teachers and admins)"""
    return service.create_course(community_id, course_data, user_data["id"])


@community_router.get("/{community_id}/courses", response_model=List[CourseResponse])
async def list_courses(
    community_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    """Courses of a community; hidden ones only for teachers and admins"""
    return service.list_courses(community_id, include_hidden=is_teacher_or_admin(user_data))


@router.get("/accessible", response_model=List[CourseResponse])
async def accessible_courses(
    user_data: Dict = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    """Courses the caller can currently open"""
    return service.accessible_courses(user_data)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    """Get course by ID"""
    return service.get_course(course_id)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: str,
    course_data: CourseUpdate,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    """Update course (teachers and admins)"""
    return service.update_course(course_id, course_data)


@router.delete("/{course_id}", status_code=204)
async def delete_course(
    course_id: str,
    user_data: Dict = Depends(require_capability("courses:delete")),
    service: CourseService = Depends(get_course_service)
):
    """Delete course (teachers and admins)"""
    service.delete_course(course_id)
    return None


@router.get("/{course_id}/outline", response_model=CourseOutline)
async def get_outline(
    course_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    """Modules and lessons with the caller's progress"""
    service.check_can_view(course_id, user_data)
    return service.get_outline(course_id, user_data["id"])


@router.post("/{course_id}/modules", response_model=ModuleResponse, status_code=201)
async def create_module(
    course_id: str,
    module_data: ModuleCreate,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    """Append a module to the course"""
    return service.create_module(course_id, module_data)


@router.put("/{course_id}/modules/reorder", response_model=List[ModuleResponse])
async def reorder_modules(
    course_id: str,
    reorder_data: ReorderRequest,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    """Reorder the modules of the course"""
    return service.reorder_modules(course_id, reorder_data.ids)


@router.post("/{course_id}/access", response_model=CourseAccessResponse, status_code=201)
async def grant_access(
    course_id: str,
    grant: CourseAccessGrant,
    user_data: Dict = Depends(require_capability("courses:grant_access")),
    service: CourseService = Depends(get_course_service)
):
    """Give a user access to the course for a period"""
    return service.grant_access(course_id, grant, user_data["id"])


@router.get("/{course_id}/access", response_model=List[CourseAccessResponse])
async def list_access(
    course_id: str,
    user_data: Dict = Depends(require_capability("courses:grant_access")),
    service: CourseService = Depends(get_course_service)
):
    """Access grants of the course"""
    return service.list_access(course_id)


@router.delete("/access/{access_id}", status_code=204)
async def revoke_access(
    access_id: str,
    user_data: Dict = Depends(require_capability("courses:grant_access")),
    service: CourseService = Depends(get_course_service)
):
    """Remove an access grant"""
    service.revoke_access(access_id)
    return None


@modules_router.put("/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: str,
    module_data: ModuleUpdate,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    return service.update_module(module_id, module_data)


@modules_router.delete("/{module_id}", status_code=204)
async def delete_module(
    module_id: str,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    service.delete_module(module_id)
    return None


@modules_router.post("/{module_id}/lessons", response_model=LessonResponse, status_code=201)
async def create_lesson(
    module_id: str,
    lesson_data: LessonCreate,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    """Append a lesson to the module"""
    return service.create_lesson(module_id, lesson_data)


@modules_router.put("/{module_id}/lessons/reorder", response_model=List[LessonResponse])
async def reorder_lessons(
    module_id: str,
    reorder_data: ReorderRequest,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    return service.reorder_lessons(module_id, reorder_data.ids)


@lessons_router.put("/{lesson_id}", response_model=LessonResponse)
async def update_lesson(
    lesson_id: str,
    lesson_data: LessonUpdate,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    return service.update_lesson(lesson_id, lesson_data)


@lessons_router.delete("/{lesson_id}", status_code=204)
async def delete_lesson(
    lesson_id: str,
    user_data: Dict = Depends(require_capability("courses:update")),
    service: CourseService = Depends(get_course_service)
):
    service.delete_lesson(lesson_id)
    return None


@lessons_router.put("/{lesson_id}/progress", response_model=LessonProgressResponse)
async def set_progress(
    lesson_id: str,
    progress_data: LessonProgressUpdate,
    user_data: Dict = Depends(get_current_user),
    service: CourseService = Depends(get_course_service)
):
    """Mark a lesson completed or not completed for the caller"""
    service.check_can_view(service.course_id_of_lesson(lesson_id), user_data)
    return service.set_progress(lesson_id, user_data["id"], progress_data.completed)
