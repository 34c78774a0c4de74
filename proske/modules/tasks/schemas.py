from pydantic import AfterValidator, BaseModel, Field, model_validator
from typing import Annotated, Optional, List, Literal
from datetime import date, datetime
import math

# API name -> column suffix (grade_<suffix>, obs_<suffix>)
REVIEW_CATEGORIES = {
    "right_hand": "mao_direita",
    "left_hand": "mao_esquerda",
    "voice": "voz",
    "video": "video",
    "interpretation": "interpretacao",
    "audio": "audio",
}


def _check_youtube(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        raise ValueError("Invalid URL")
    if "youtube.com" not in url and "youtu.be" not in url:
        raise ValueError("Must be a YouTube link")
    return url


YoutubeUrl = Annotated[str, AfterValidator(_check_youtube)]


def compute_final_grade(grades: List[int]) -> int:
    """Mean of the 1-5 category grades scaled to 0-100, halves rounded up"""
    average = sum(grades) / len(grades)
    return int(math.floor(average / 5 * 100 + 0.5))


class SubmissionCreate(BaseModel):
    video_url: YoutubeUrl
    recording_date: date
    task_name: str = Field(min_length=3, max_length=200)
    song_name: str = Field(min_length=1, max_length=200)
    harmonic_field: str = Field(min_length=1, max_length=100)
    effective_key: str = Field(min_length=1, max_length=50)
    bpm: int = Field(ge=1, le=400)
    melodic_reference: str = Field(min_length=1, max_length=200)
    extra_notes: Optional[str] = None
    announce_group_id: Optional[str] = Field(default=None, description="Post the submission in this group")


class CategoryReview(BaseModel):
    grade: int = Field(ge=1, le=5)
    observation: Optional[str] = None


class SubmissionReview(BaseModel):
    right_hand: CategoryReview
    left_hand: CategoryReview
    voice: CategoryReview
    video: CategoryReview
    interpretation: CategoryReview
    audio: CategoryReview
    teacher_comments: Optional[str] = None
    announce_group_id: Optional[str] = None

    @model_validator(mode="after")
    def check_observations(self):
        for name in REVIEW_CATEGORIES:
            category = getattr(self, name)
            if category.grade < 5 and not (category.observation or "").strip():
                raise ValueError(f"{name}: an observation is required when the grade is below 5")
        return self

    def categories(self) -> dict:
        return {name: getattr(self, name) for name in REVIEW_CATEGORIES}

    @property
    def final_grade(self) -> int:
        return compute_final_grade([c.grade for c in self.categories().values()])


class SubmissionResponse(BaseModel):
    id: str
    community_id: str
    student_id: str
    student_name: Optional[str] = None
    student_avatar: Optional[str] = None
    video_url: str
    recording_date: date
    task_name: str
    song_name: Optional[str] = None
    harmonic_field: Optional[str] = None
    effective_key: Optional[str] = None
    bpm: Optional[int] = None
    melodic_reference: Optional[str] = None
    extra_notes: Optional[str] = None
    status: Literal["pending", "reviewed"] = "pending"
    grade: Optional[int] = None
    categories: Optional[dict] = None
    teacher_comments: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime


class AssignedTaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    youtube_url: Optional[str] = None
    pdf_url: Optional[str] = None
    deadline: Optional[datetime] = None
    student_ids: List[str] = Field(min_length=1, description="Select at least one student")
    announce_group_id: Optional[str] = None

    @model_validator(mode="after")
    def normalize(self):
        self.title = self.title.strip()
        self.description = self.description.strip()
        if not self.title or not self.description:
            raise ValueError("Title and description are required")
        self.youtube_url = (self.youtube_url or "").strip() or None
        self.pdf_url = (self.pdf_url or "").strip() or None
        self.student_ids = list(dict.fromkeys(self.student_ids))
        return self


class AssignedTaskResponse(BaseModel):
    id: str
    community_id: str
    created_by: str
    title: str
    description: str
    youtube_url: Optional[str] = None
    pdf_url: Optional[str] = None
    deadline: Optional[datetime] = None
    student_ids: List[str] = []
    created_at: datetime


class MyAssignedTask(BaseModel):
    id: str
    assigned_task_id: str
    title: str
    description: str
    youtube_url: Optional[str] = None
    pdf_url: Optional[str] = None
    deadline: Optional[datetime] = None
    status: Literal["pending", "completed"]
    is_overdue: bool = False
    created_at: datetime


class AssignmentStatusUpdate(BaseModel):
    status: Literal["pending", "completed"]
