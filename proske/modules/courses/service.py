from supabase import Client
from proske.core.dependencies import is_teacher_or_admin
from proske.modules.courses.schemas import (
    CourseCreate, CourseUpdate, CourseResponse,
    ModuleCreate, ModuleUpdate, ModuleResponse,
    LessonCreate, LessonUpdate, LessonResponse,
    OutlineModule, OutlineLesson, CourseOutline,
    LessonProgressResponse, CourseAccessGrant, CourseAccessResponse
)
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def progress_row(user_id: str, lesson_id: str, completed: bool, now: Optional[datetime] = None) -> dict:
    """lesson_progress row; completed_at is set only while completed is true"""
    now = now or datetime.now(timezone.utc)
    return {
        "user_id": user_id,
        "lesson_id": lesson_id,
        "completed": completed,
        "completed_at": now.isoformat() if completed else None,
        "updated_at": now.isoformat()
    }


class CourseService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_one(self, table: str, row_id: str, not_found: str) -> dict:
        result = self.supabase.table(table)\
            .select("*")\
            .eq("id", row_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail=not_found)
        return result.data[0]

    def _next_order_index(self, table: str, parent_column: str, parent_id: str) -> int:
        result = self.supabase.table(table)\
            .select("order_index")\
            .eq(parent_column, parent_id)\
            .order("order_index", desc=True)\
            .limit(1)\
            .execute()
        return result.data[0]["order_index"] + 1 if result.data else 0

    # Courses

    def create_course(self, community_id: str, course_data: CourseCreate, user_id: str) -> CourseResponse:
        """Create a course in a community"""
        try:
            self._get_one("communities", community_id, "Community not found")
            result = self.supabase.table("courses").insert({
                **course_data.model_dump(),
                "community_id": community_id,
                "created_by": user_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create course")
            return CourseResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_courses(self, community_id: str, include_hidden: bool = False) -> List[CourseResponse]:
        """Courses of a community, newest first"""
        try:
            query = self.supabase.table("courses")\
                .select("*")\
                .eq("community_id", community_id)
            if not include_hidden:
                query = query.eq("is_visible", True)
            result = query.order("created_at", desc=True).execute()
            return [CourseResponse(**c) for c in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_course(self, course_id: str) -> CourseResponse:
        try:
            return CourseResponse(**self._get_one("courses", course_id, "Course not found"))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_course(self, course_id: str, course_data: CourseUpdate) -> CourseResponse:
        try:
            update_data = course_data.model_dump(exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("courses")\
                .update(update_data)\
                .eq("id", course_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Course not found")
            return CourseResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_course(self, course_id: str) -> bool:
        """Delete a course; modules, lessons and progress cascade in the database"""
        try:
            result = self.supabase.table("courses")\
                .delete()\
                .eq("id", course_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Course not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Modules

    def create_module(self, course_id: str, module_data: ModuleCreate) -> ModuleResponse:
        """Append a module at the end of the course"""
        try:
            self._get_one("courses", course_id, "Course not found")
            result = self.supabase.table("course_modules").insert({
                "course_id": course_id,
                "name": module_data.name.strip(),
                "description": module_data.description or None,
                "order_index": self._next_order_index("course_modules", "course_id", course_id)
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create module")
            return ModuleResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_module(self, module_id: str, module_data: ModuleUpdate) -> ModuleResponse:
        try:
            result = self.supabase.table("course_modules")\
                .update(module_data.model_dump(exclude_none=True))\
                .eq("id", module_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Module not found")
            return ModuleResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_module(self, module_id: str) -> bool:
        try:
            self.supabase.table("course_lessons")\
                .delete()\
                .eq("module_id", module_id)\
                .execute()
            result = self.supabase.table("course_modules")\
                .delete()\
                .eq("id", module_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Module not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _reorder(self, table: str, parent_column: str, parent_id: str, ids: List[str]) -> None:
        current = self.supabase.table(table)\
            .select("id")\
            .eq(parent_column, parent_id)\
            .execute()
        current_ids = {row["id"] for row in current.data}
        if set(ids) != current_ids or len(ids) != len(current_ids):
            raise HTTPException(status_code=400, detail="The new order must list every item exactly once")
        for index, row_id in enumerate(ids):
            self.supabase.table(table)\
                .update({"order_index": index})\
                .eq("id", row_id)\
                .execute()

    def reorder_modules(self, course_id: str, ids: List[str]) -> List[ModuleResponse]:
        """Set order_index of every module of the course from the given id order"""
        try:
            self._reorder("course_modules", "course_id", course_id, ids)
            return self.list_modules(course_id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_modules(self, course_id: str) -> List[ModuleResponse]:
        result = self.supabase.table("course_modules")\
            .select("*")\
            .eq("course_id", course_id)\
            .order("order_index")\
            .execute()
        return [ModuleResponse(**m) for m in result.data]

    # Lessons

    def create_lesson(self, module_id: str, lesson_data: LessonCreate) -> LessonResponse:
        """Append a lesson at the end of the module"""
        try:
            self._get_one("course_modules", module_id, "Module not found")
            result = self.supabase.table("course_lessons").insert({
                "module_id": module_id,
                "name": lesson_data.name.strip(),
                "description": lesson_data.description or None,
                "youtube_url": lesson_data.youtube_url,
                "duration_minutes": lesson_data.duration_minutes,
                "order_index": self._next_order_index("course_lessons", "module_id", module_id)
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create lesson")
            return LessonResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_lesson(self, lesson_id: str, lesson_data: LessonUpdate) -> LessonResponse:
        try:
            result = self.supabase.table("course_lessons")\
                .update(lesson_data.model_dump(exclude_none=True))\
                .eq("id", lesson_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Lesson not found")
            return LessonResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_lesson(self, lesson_id: str) -> bool:
        try:
            result = self.supabase.table("course_lessons")\
                .delete()\
                .eq("id", lesson_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Lesson not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def reorder_lessons(self, module_id: str, ids: List[str]) -> List[LessonResponse]:
        try:
            self._reorder("course_lessons", "module_id", module_id, ids)
            result = self.supabase.table("course_lessons")\
                .select("*")\
                .eq("module_id", module_id)\
                .order("order_index")\
                .execute()
            return [LessonResponse(**lesson) for lesson in result.data]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Outline and progress

    def get_outline(self, course_id: str, user_id: str) -> CourseOutline:
        """Modules with their lessons and the user's completion"""
        try:
            course = self.get_course(course_id)
            modules = self.list_modules(course_id)
            lessons = []
            if modules:
                lessons_result = self.supabase.table("course_lessons")\
                    .select("*")\
                    .in_("module_id", [m.id for m in modules])\
                    .order("order_index")\
                    .execute()
                lessons = lessons_result.data
            completed_ids = set()
            if lessons:
                progress_result = self.supabase.table("lesson_progress")\
                    .select("lesson_id, completed")\
                    .eq("user_id", user_id)\
                    .in_("lesson_id", [lesson["id"] for lesson in lessons])\
                    .execute()
                completed_ids = {p["lesson_id"] for p in progress_result.data if p["completed"]}

            outline_modules = []
            for module in modules:
                module_lessons = [
                    OutlineLesson(**lesson, completed=lesson["id"] in completed_ids)
                    for lesson in lessons if lesson["module_id"] == module.id
                ]
                outline_modules.append(OutlineModule(
                    **module.model_dump(),
                    lessons=module_lessons,
                    completed_count=sum(1 for lesson in module_lessons if lesson.completed),
                    total=len(module_lessons)
                ))
            return CourseOutline(
                course=course,
                modules=outline_modules,
                completed_count=sum(m.completed_count for m in outline_modules),
                total=sum(m.total for m in outline_modules)
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_progress(self, lesson_id: str, user_id: str, completed: bool) -> LessonProgressResponse:
        """Upsert the (user, lesson) progress row"""
        try:
            self._get_one("course_lessons", lesson_id, "Lesson not found")
            result = self.supabase.table("lesson_progress")\
                .upsert(progress_row(user_id, lesson_id, completed), on_conflict="user_id,lesson_id")\
                .execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save progress")
            return LessonProgressResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    # Access grants

    def grant_access(self, course_id: str, grant: CourseAccessGrant, granted_by: str) -> CourseAccessResponse:
        try:
            self._get_one("courses", course_id, "Course not found")
            result = self.supabase.table("user_course_access").insert({
                "course_id": course_id,
                "user_id": grant.user_id,
                "start_date": grant.start_date.isoformat(),
                "end_date": grant.end_date.isoformat(),
                "granted_by": granted_by
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to grant access")
            logger.info(f"Access to course {course_id} granted to {grant.user_id}")
            return CourseAccessResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_access(self, course_id: str) -> List[CourseAccessResponse]:
        try:
            result = self.supabase.table("user_course_access")\
                .select("*")\
                .eq("course_id", course_id)\
                .order("end_date", desc=True)\
                .execute()
            return [CourseAccessResponse(**a) for a in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def revoke_access(self, access_id: str) -> bool:
        try:
            result = self.supabase.table("user_course_access")\
                .delete()\
                .eq("id", access_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Access grant not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _active_grants(self, user_id: str) -> List[dict]:
        result = self.supabase.table("user_course_access")\
            .select("course_id, start_date, end_date")\
            .eq("user_id", user_id)\
            .gt("end_date", datetime.now(timezone.utc).isoformat())\
            .execute()
        return result.data

    def accessible_courses(self, user_data: dict) -> List[CourseResponse]:
        """Every course for teachers/admins; otherwise courses with an active access grant"""
        try:
            if is_teacher_or_admin(user_data):
                result = self.supabase.table("courses")\
                    .select("*")\
                    .order("created_at", desc=True)\
                    .execute()
                return [CourseResponse(**c) for c in result.data]
            grants = self._active_grants(user_data["id"])
            if not grants:
                return []
            end_dates = {}
            for grant in grants:
                end_dates[grant["course_id"]] = max(end_dates.get(grant["course_id"], grant["end_date"]), grant["end_date"])
            result = self.supabase.table("courses")\
                .select("*")\
                .in_("id", list(end_dates))\
                .execute()
            return [CourseResponse(**c, access_end_date=end_dates[c["id"]]) for c in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def check_can_view(self, course_id: str, user_data: dict) -> None:
        """Teachers/admins, free visible courses, or an active access grant"""
        if is_teacher_or_admin(user_data):
            return
        course = self.get_course(course_id)
        if course.is_visible and not course.price:
            return
        if any(g["course_id"] == course_id for g in self._active_grants(user_data["id"])):
            return
        raise HTTPException(status_code=403, detail="You do not have access to this course")

    def course_id_of_module(self, module_id: str) -> str:
        return self._get_one("course_modules", module_id, "Module not found")["course_id"]

    def course_id_of_lesson(self, lesson_id: str) -> str:
        lesson = self._get_one("course_lessons", lesson_id, "Lesson not found")
        return self.course_id_of_module(lesson["module_id"])
