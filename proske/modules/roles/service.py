from supabase import Client
from proske.modules.roles.schemas import AppRole, UserRolesResponse
from typing import Iterable, List
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

LEGACY_ROLE_ALIASES = {"visitor": AppRole.GUEST.value}

# Highest first
ROLE_PRECEDENCE = [AppRole.ADMIN.value, AppRole.TEACHER.value, AppRole.GUEST.value, AppRole.STUDENT.value]


def normalize_roles(raw_roles: Iterable[str]) -> List[str]:
    """Map stored role values onto app_role, dropping unknown values and duplicates."""
    valid = {r.value for r in AppRole}
    roles = []
    for raw in raw_roles:
        role = LEGACY_ROLE_ALIASES.get(raw, raw)
        if role not in valid:
            logger.warning(f"Ignoring unknown role value: {raw}")
            continue
        if role not in roles:
            roles.append(role)
    return roles


def primary_role(roles: Iterable[str]) -> str:
    role_set = set(roles)
    for role in ROLE_PRECEDENCE:
        if role in role_set:
            return role
    return AppRole.STUDENT.value


class RoleService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_user_roles(self, user_id: str) -> UserRolesResponse:
        """Get the roles of a user"""
        try:
            result = self.supabase.table("user_roles")\
                .select("role")\
                .eq("user_id", user_id)\
                .execute()
            roles = normalize_roles([r["role"] for r in (result.data or [])])
            return UserRolesResponse(user_id=user_id, roles=roles, primary_role=primary_role(roles))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_user_role(self, user_id: str, role: AppRole) -> UserRolesResponse:
        """Replace every role row of the user with a single role"""
        try:
            self.supabase.table("user_roles")\
                .delete()\
                .eq("user_id", user_id)\
                .execute()
            self.supabase.table("user_roles").insert({
                "user_id": user_id,
                "role": role.value
            }).execute()
            logger.info(f"Role of user {user_id} set to {role.value}")
            return UserRolesResponse(user_id=user_id, roles=[role.value], primary_role=role.value)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def ensure_default_role(self, user_id: str, role: AppRole = AppRole.STUDENT) -> None:
        """Give the user a role when they have none"""
        existing = self.supabase.table("user_roles")\
            .select("id")\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if not existing.data:
            self.supabase.table("user_roles").insert({
                "user_id": user_id,
                "role": role.value
            }).execute()
