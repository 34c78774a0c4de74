"""
Role capability configuration.
Maps every module action ("capability") to the app_role values allowed to perform it.
Ownership rules (community creator, event creator, group membership) are checked in the
services on top of this matrix.
"""

APP_ROLES = ["student", "teacher", "admin", "guest"]

# Modules and the actions they expose
MODULES = {
    "communities": {
        "actions": ["create", "read", "update", "delete", "invite"],
        "description": "Subject communities"
    },
    "groups": {
        "actions": ["create", "read", "update", "delete", "manage_members"],
        "description": "Conversation groups"
    },
    "courses": {
        "actions": ["create", "read", "update", "delete", "grant_access"],
        "description": "Courses, modules and lessons"
    },
    "events": {
        "actions": ["create", "read", "update", "delete"],
        "description": "Scheduled events"
    },
    "submissions": {
        "actions": ["create", "read", "review"],
        "description": "Task submissions"
    },
    "assigned_tasks": {
        "actions": ["create", "read"],
        "description": "Tasks assigned to students"
    },
    "plans": {
        "actions": ["create", "read", "update", "delete", "assign"],
        "description": "Subscription plans and subscriptions"
    },
    "payments": {
        "actions": ["manage", "read"],
        "description": "Payments and financial reports"
    },
    "crm": {
        "actions": ["manage"],
        "description": "Tags, leads and notes"
    },
    "profiles": {
        "actions": ["read", "manage"],
        "description": "User profiles and roles"
    },
    "interviews": {
        "actions": ["create", "confirm"],
        "description": "Visitor interviews"
    },
    "studies": {
        "actions": ["schedule"],
        "description": "Automatic individual study scheduling"
    }
}

# Actions granted per role; "*" grants every action of the module
ROLE_GRANTS = {
    "admin": {module: ["*"] for module in MODULES},
    "teacher": {
        "communities": ["*"],
        "groups": ["*"],
        "courses": ["*"],
        "events": ["*"],
        "submissions": ["read", "review"],
        "assigned_tasks": ["*"],
        "plans": ["read"],
        "profiles": ["read"],
    },
    "student": {
        "communities": ["read"],
        "groups": ["read"],
        "courses": ["read"],
        "events": ["read"],
        "submissions": ["create", "read"],
        "assigned_tasks": ["read"],
        "plans": ["read"],
        "payments": ["read"],
    },
    "guest": {
        "communities": ["read"],
        "plans": ["read"],
        "interviews": ["create"],
    },
}


def get_capability_matrix():
    """
    Returns {"communities:create": ["admin", "teacher"], ...} for every module action.
    """
    matrix = {}
    for module_name, module_config in MODULES.items():
        for action in module_config["actions"]:
            capability = f"{module_name}:{action}"
            allowed = []
            for role in APP_ROLES:
                granted = ROLE_GRANTS.get(role, {}).get(module_name, [])
                if "*" in granted or action in granted:
                    allowed.append(role)
            matrix[capability] = allowed
    return matrix


CAPABILITY_MATRIX = get_capability_matrix()


def roles_with_capability(capability: str) -> list:
    return CAPABILITY_MATRIX.get(capability, [])


def capabilities_for_roles(roles) -> list:
    """Sorted capability names available to any of the given roles"""
    role_set = set(roles)
    return sorted(cap for cap, allowed in CAPABILITY_MATRIX.items() if role_set.intersection(allowed))
