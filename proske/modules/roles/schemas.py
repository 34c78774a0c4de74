from enum import Enum
from pydantic import BaseModel
from typing import List


class AppRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"
    GUEST = "guest"


class RoleUpdate(BaseModel):
    role: AppRole


class UserRolesResponse(BaseModel):
    user_id: str
    roles: List[AppRole]
    primary_role: AppRole
