from pydantic import AfterValidator, BaseModel, Field, model_validator
from typing import Annotated, Optional, List
from datetime import datetime


class CourseCreate(BaseModel):
    name: str = Field(min_length=3, max_length=150)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    checkout_url: Optional[str] = None
    is_visible: bool = True


class CourseUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=150)
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    checkout_url: Optional[str] = None
    is_visible: Optional[bool] = None


class CourseResponse(BaseModel):
    id: str
    community_id: str
    name: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    price: Optional[float] = None
    checkout_url: Optional[str] = None
    is_visible: bool = True
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    access_end_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class ModuleCreate(BaseModel):
    name: str = Field(min_length=3, max_length=150)
    description: Optional[str] = None


class ModuleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=150)
    description: Optional[str] = None


class ModuleResponse(BaseModel):
    id: str
    course_id: str
    name: str
    description: Optional[str] = None
    order_index: int
    created_at: Optional[datetime] = None


def _check_youtube(url: str) -> str:
    if "youtube" not in url and "youtu.be" not in url:
        raise ValueError("Must be a YouTube URL")
    return url


YoutubeUrl = Annotated[str, AfterValidator(_check_youtube)]


class LessonCreate(BaseModel):
    name: str = Field(min_length=3, max_length=150)
    description: Optional[str] = None
    youtube_url: YoutubeUrl
    duration_minutes: Optional[int] = Field(default=None, ge=1)


class LessonUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=150)
    description: Optional[str] = None
    youtube_url: Optional[YoutubeUrl] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)


class LessonResponse(BaseModel):
    id: str
    module_id: str
    name: str
    description: Optional[str] = None
    youtube_url: str
    duration_minutes: Optional[int] = None
    order_index: int
    created_at: Optional[datetime] = None


class ReorderRequest(BaseModel):
    ids: List[str] = Field(min_length=1, description="Every id of the parent, in the new order")


class OutlineLesson(LessonResponse):
    completed: bool = False


class OutlineModule(ModuleResponse):
    lessons: List[OutlineLesson] = []
    completed_count: int = 0
    total: int = 0


class CourseOutline(BaseModel):
    course: CourseResponse
    modules: List[OutlineModule]
    completed_count: int
    total: int


class LessonProgressUpdate(BaseModel):
    completed: bool


class LessonProgressResponse(BaseModel):
    lesson_id: str
    user_id: str
    completed: bool
    completed_at: Optional[datetime] = None


class CourseAccessGrant(BaseModel):
    user_id: str
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class CourseAccessResponse(BaseModel):
    id: str
    course_id: str
    user_id: str
    start_date: datetime
    end_date: datetime
    granted_by: Optional[str] = None
    created_at: Optional[datetime] = None
