from supabase import Client
from proske.core.dependencies import check_group_access, is_group_member, is_teacher_or_admin
from proske.modules.tasks.schemas import (
    REVIEW_CATEGORIES, SubmissionCreate, SubmissionReview, SubmissionResponse,
    AssignedTaskCreate, AssignedTaskResponse, MyAssignedTask
)
from proske.modules.messages.schemas import TaskSubmissionPayload, TaskAssignedPayload, TaskReviewedPayload
from proske.modules.messages.service import MessageService, check_can_send
from proske.modules.notifications.schemas import NotificationCreate
from proske.modules.notifications.service import NotificationService
from proske.modules.profiles.service import ProfileService
from proske.modules.events.service import parse_timestamp
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

_DERIVED_FIELDS = {"categories", "student_name", "student_avatar"}


def review_columns(review: SubmissionReview, reviewer_id: str, now: datetime) -> dict:
    """Every column a review writes, set together in one update"""
    columns = {
        "status": "reviewed",
        "grade": review.final_grade,
        "teacher_comments": (review.teacher_comments or "").strip() or None,
        "reviewed_by": reviewer_id,
        "reviewed_at": now.isoformat(),
        "updated_at": now.isoformat()
    }
    for name, category in review.categories().items():
        suffix = REVIEW_CATEGORIES[name]
        columns[f"grade_{suffix}"] = category.grade
        columns[f"obs_{suffix}"] = (category.observation or "").strip() or None
    return columns


def to_submission_response(row: dict, profile: Optional[dict] = None) -> SubmissionResponse:
    categories = None
    if row.get("status") == "reviewed":
        categories = {
            name: {"grade": row.get(f"grade_{suffix}"), "observation": row.get(f"obs_{suffix}")}
            for name, suffix in REVIEW_CATEGORIES.items()
        }
    fields = {k: v for k, v in row.items() if k in SubmissionResponse.model_fields and k not in _DERIVED_FIELDS}
    return SubmissionResponse(
        **fields,
        student_name=(profile or {}).get("name"),
        student_avatar=(profile or {}).get("avatar_url"),
        categories=categories
    )


class TaskService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _announcement_group(self, group_id: str, community_id: str, user_data: dict) -> dict:
        """Group where the caller may post an announcement about the task"""
        group = check_group_access(group_id, user_data, self.supabase)
        if group["community_id"] != community_id:
            raise HTTPException(status_code=400, detail="Group does not belong to this community")
        check_can_send(group, user_data.get("roles", []), is_group_member(group_id, user_data["id"], self.supabase))
        return group

    def _announce(self, group: dict, user_id: str, content: str, payload) -> None:
        try:
            MessageService(self.supabase).post_message(group, user_id, content, payload)
        except Exception as e:
            logger.warning(f"Failed to announce in group {group['id']}: {e}")

    def _with_profiles(self, rows: List[dict]) -> List[SubmissionResponse]:
        profiles = ProfileService(self.supabase).get_profiles_by_ids(list({r["student_id"] for r in rows}))
        return [to_submission_response(r, profiles.get(r["student_id"])) for r in rows]

    def _get_submission_row(self, submission_id: str) -> dict:
        result = self.supabase.table("submissions")\
            .select("*")\
            .eq("id", submission_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Submission not found")
        return result.data[0]

    def create_submission(self, community_id: str, submission_data: SubmissionCreate, user_data: dict) -> SubmissionResponse:
        """Store a student's task submission, optionally announcing it in a group"""
        try:
            group = None
            if submission_data.announce_group_id:
                group = self._announcement_group(submission_data.announce_group_id, community_id, user_data)

            insert_data = submission_data.model_dump(mode="json", exclude={"announce_group_id"})
            result = self.supabase.table("submissions").insert({
                **insert_data,
                "community_id": community_id,
                "student_id": user_data["id"],
                "status": "pending"
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create submission")
            row = result.data[0]

            if group:
                self._announce(
                    group, user_data["id"],
                    f"📹 Nova tarefa enviada: {row['task_name']}",
                    TaskSubmissionPayload(
                        submission_id=row["id"],
                        task_name=row["task_name"],
                        video_url=row.get("video_url"),
                        song_name=row.get("song_name")
                    )
                )
            return self._with_profiles([row])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create submission: {str(e)}")

    def list_submissions(self, community_id: str, user_data: dict, status: Optional[str] = None) -> List[SubmissionResponse]:
        """Teachers and admins see every submission of the community, students their own"""
        try:
            query = self.supabase.table("submissions")\
                .select("*")\
                .eq("community_id", community_id)
            if not is_teacher_or_admin(user_data):
                query = query.eq("student_id", user_data["id"])
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).execute()
            return self._with_profiles(result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def my_submissions(self, user_id: str) -> List[SubmissionResponse]:
        try:
            result = self.supabase.table("submissions")\
                .select("*")\
                .eq("student_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return self._with_profiles(result.data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_submission(self, submission_id: str, user_data: dict) -> SubmissionResponse:
        try:
            row = self._get_submission_row(submission_id)
            if row["student_id"] != user_data["id"] and not is_teacher_or_admin(user_data):
                raise HTTPException(status_code=403, detail="You can only view your own submissions")
            return self._with_profiles([row])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def review_submission(self, submission_id: str, review: SubmissionReview, user_data: dict) -> SubmissionResponse:
        """
        Review a pending submission.
        The update is conditioned on status = pending, so a submission is never reviewed twice
        and status, grade and reviewer always change together.
        """
        try:
            row = self._get_submission_row(submission_id)
            if row["status"] != "pending":
                raise HTTPException(status_code=409, detail="Submission has already been reviewed")

            group = None
            if review.announce_group_id:
                group = self._announcement_group(review.announce_group_id, row["community_id"], user_data)

            now = datetime.now(timezone.utc)
            result = self.supabase.table("submissions")\
                .update(review_columns(review, user_data["id"], now))\
                .eq("id", submission_id)\
                .eq("status", "pending")\
                .execute()

            if not result.data:
                raise HTTPException(status_code=409, detail="Submission has already been reviewed")
            reviewed = result.data[0]

            NotificationService(self.supabase).notify(NotificationCreate(
                user_id=reviewed["student_id"],
                type="task_reviewed",
                title="Tarefa corrigida",
                message=f"✅ Sua tarefa \"{reviewed['task_name']}\" foi corrigida",
                description=f"Nota final: {reviewed['grade']}",
                action="/tasks",
                related_id=reviewed["id"]
            ))
            if group:
                self._announce(
                    group, user_data["id"],
                    f"✅ Tarefa corrigida: {reviewed['task_name']} (nota {reviewed['grade']})",
                    TaskReviewedPayload(
                        submission_id=reviewed["id"],
                        grade=reviewed["grade"],
                        task_name=reviewed["task_name"]
                    )
                )
            logger.info(f"Submission {submission_id} reviewed by {user_data['id']}")
            return self._with_profiles([reviewed])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to review submission: {str(e)}")

    def create_assigned_task(self, community_id: str, task_data: AssignedTaskCreate, user_data: dict) -> AssignedTaskResponse:
        """Create a task and one pending assignment per selected student"""
        try:
            group = None
            if task_data.announce_group_id:
                group = self._announcement_group(task_data.announce_group_id, community_id, user_data)

            result = self.supabase.table("assigned_tasks").insert({
                **task_data.model_dump(mode="json", exclude={"student_ids", "announce_group_id"}),
                "community_id": community_id,
                "created_by": user_data["id"]
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create task")
            task = result.data[0]

            self.supabase.table("assigned_task_students")\
                .upsert(
                    [{"assigned_task_id": task["id"], "student_id": sid, "status": "pending"}
                     for sid in task_data.student_ids],
                    on_conflict="assigned_task_id,student_id",
                    ignore_duplicates=True
                )\
                .execute()

            notifier = NotificationService(self.supabase)
            for student_id in task_data.student_ids:
                notifier.notify(NotificationCreate(
                    user_id=student_id,
                    type="task_assigned",
                    title="Nova tarefa",
                    message=f"📌 Nova tarefa: {task['title']}",
                    description=task["description"],
                    action="/tasks",
                    related_id=task["id"]
                ))
            if group:
                self._announce(
                    group, user_data["id"],
                    f"📌 Nova tarefa: {task['title']}",
                    TaskAssignedPayload(task_id=task["id"], title=task["title"], deadline=task.get("deadline"))
                )
            return AssignedTaskResponse(**task, student_ids=task_data.student_ids)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create task: {str(e)}")

    def list_assigned_tasks(self, community_id: str) -> List[AssignedTaskResponse]:
        try:
            result = self.supabase.table("assigned_tasks")\
                .select("*")\
                .eq("community_id", community_id)\
                .order("created_at", desc=True)\
                .execute()
            task_ids = [t["id"] for t in result.data]
            students = {}
            if task_ids:
                links = self.supabase.table("assigned_task_students")\
                    .select("assigned_task_id, student_id")\
                    .in_("assigned_task_id", task_ids)\
                    .execute()
                for link in links.data:
                    students.setdefault(link["assigned_task_id"], []).append(link["student_id"])
            return [AssignedTaskResponse(**t, student_ids=students.get(t["id"], [])) for t in result.data]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def my_assigned_tasks(self, user_id: str, now: Optional[datetime] = None) -> List[MyAssignedTask]:
        """Tasks assigned to the user, newest assignment first"""
        now = now or datetime.now(timezone.utc)
        try:
            links = self.supabase.table("assigned_task_students")\
                .select("*")\
                .eq("student_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            if not links.data:
                return []
            tasks_result = self.supabase.table("assigned_tasks")\
                .select("*")\
                .in_("id", [link["assigned_task_id"] for link in links.data])\
                .execute()
            tasks = {t["id"]: t for t in tasks_result.data}

            items = []
            for link in links.data:
                task = tasks.get(link["assigned_task_id"])
                if not task:
                    continue
                deadline = parse_timestamp(task["deadline"]) if task.get("deadline") else None
                items.append(MyAssignedTask(
                    id=link["id"],
                    assigned_task_id=task["id"],
                    title=task["title"],
                    description=task["description"],
                    youtube_url=task.get("youtube_url"),
                    pdf_url=task.get("pdf_url"),
                    deadline=deadline,
                    status=link["status"],
                    is_overdue=bool(deadline and deadline < now and link["status"] == "pending"),
                    created_at=link["created_at"]
                ))
            return items
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_assignment_status(self, assignment_id: str, status: str, user_id: str) -> MyAssignedTask:
        """Students mark their own assignment completed or pending again"""
        try:
            result = self.supabase.table("assigned_task_students")\
                .update({"status": status})\
                .eq("id", assignment_id)\
                .eq("student_id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Assignment not found")
            for item in self.my_assigned_tasks(user_id):
                if item.id == assignment_id:
                    return item
            raise HTTPException(status_code=404, detail="Assigned task not found")
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
