"""
In-memory stand-in for the parts of the Supabase client the services use.

Tables are lists of dicts. Queries support the PostgREST builder calls used in proske
(select/insert/update/upsert/delete, eq/neq/in_/is_/not_/gt/gte/lt/lte/ilike,
order/limit/offset). Unique constraints raise postgrest APIError with code 23505
like the real database does.
"""

import copy
import fnmatch
import itertools
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from postgrest.exceptions import APIError

# (columns, predicate) per table; predicate limits the constraint to matching rows
UNIQUE_CONSTRAINTS = {
    "profiles": [(("id",), None)],
    "group_members": [(("group_id", "user_id"), None)],
    "community_members": [(("community_id", "user_id"), None)],
    "community_invitations": [(("invite_code",), None)],
    "event_participants": [(("event_id", "user_id"), None)],
    "event_groups": [(("event_id", "group_id"), None)],
    "lesson_progress": [(("user_id", "lesson_id"), None)],
    "message_reads": [(("message_id", "user_id"), None)],
    "user_menu_order": [(("user_id", "item_type", "item_id"), None)],
    "plan_default_groups": [(("plan_id", "group_id"), None)],
    "user_subscriptions": [(("user_id",), lambda row: row.get("status") == "active")],
    "assigned_task_students": [(("assigned_task_id", "student_id"), None)],
    "lead_tags": [(("lead_id", "tag_id"), None)],
    "user_tags": [(("user_id", "tag_id"), None)],
}

TABLE_DEFAULTS = {
    "conversation_groups": {"students_can_message": True, "is_visible": True, "allowed_message_roles": []},
    "submissions": {"status": "pending"},
    "event_participants": {"status": "pending"},
    "user_subscriptions": {"status": "active"},
    "payments": {"status": "pending"},
    "notifications": {"is_read": False},
    "assigned_task_students": {"status": "pending"},
    "interview_schedules": {"status": "pending"},
    "messages": {"message_type": "plain"},
    "community_invitations": {"used_at": None, "used_by": None},
}

# Columns that default to now() besides created_at
NOW_DEFAULTS = {
    "community_members": ("joined_at",),
    "group_members": ("joined_at",),
}

_BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)
_clock = itertools.count(1)


def _created_at() -> str:
    # Strictly increasing so ordering by created_at follows insertion order
    return (_BASE_TIME + timedelta(seconds=next(_clock))).isoformat()


def _comparable(value):
    if isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment
    return value


def _unique_violation(table: str, columns) -> APIError:
    return APIError({
        "code": "23505",
        "message": f'duplicate key value violates unique constraint "{table}_{"_".join(columns)}_key"',
        "details": None,
        "hint": None,
    })


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.columns = "*"
        self.payload = None
        self.filters = []
        self.orders = []
        self.limit_count = None
        self.offset_count = 0
        self.on_conflict = None
        self.ignore_duplicates = False
        self._negate_next = False

    @property
    def rows(self):
        return self.db.tables.setdefault(self.table_name, [])

    # Actions

    def select(self, columns="*", count=None):
        self.columns = columns
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def upsert(self, payload, on_conflict="", ignore_duplicates=False):
        self.action, self.payload = "upsert", payload
        self.on_conflict = [c.strip() for c in on_conflict.split(",") if c.strip()] or ["id"]
        self.ignore_duplicates = ignore_duplicates
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters

    def _add(self, test):
        if self._negate_next:
            self._negate_next = False
            self.filters.append(lambda row: not test(row))
        else:
            self.filters.append(test)
        return self

    @property
    def not_(self):
        self._negate_next = True
        return self

    def eq(self, column, value):
        return self._add(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._add(lambda row: row.get(column) != value)

    def in_(self, column, values):
        values = list(values)
        return self._add(lambda row: row.get(column) in values)

    def is_(self, column, value):
        expected = None if value in (None, "null") else value
        return self._add(lambda row: row.get(column) is expected if expected is None else row.get(column) == expected)

    def _compare(self, column, value, op):
        def test(row):
            current = row.get(column)
            if current is None:
                return False
            return op(_comparable(current), _comparable(value))
        return self._add(test)

    def gt(self, column, value):
        return self._compare(column, value, lambda a, b: a > b)

    def gte(self, column, value):
        return self._compare(column, value, lambda a, b: a >= b)

    def lt(self, column, value):
        return self._compare(column, value, lambda a, b: a < b)

    def lte(self, column, value):
        return self._compare(column, value, lambda a, b: a <= b)

    def ilike(self, column, pattern):
        glob = pattern.replace("%", "*").replace("_", "?").lower()
        return self._add(lambda row: fnmatch.fnmatchcase(str(row.get(column) or "").lower(), glob))

    # Modifiers

    def order(self, column, desc=False, nullsfirst=None):
        self.orders.append((column, desc))
        return self

    def limit(self, count):
        self.limit_count = count
        return self

    def offset(self, count):
        self.offset_count = count
        return self

    def range(self, start, end):
        self.offset_count = start
        self.limit_count = end - start + 1
        return self

    # Execution

    def _matching(self):
        return [row for row in self.rows if all(test(row) for test in self.filters)]

    def _project(self, row):
        if "*" in self.columns:
            return copy.deepcopy(row)
        names = [c.strip() for c in self.columns.split(",") if c.strip()]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def _check_unique(self, candidate, ignore=None):
        for columns, predicate in UNIQUE_CONSTRAINTS.get(self.table_name, []):
            if predicate and not predicate(candidate):
                continue
            for row in self.rows:
                if row is ignore or (predicate and not predicate(row)):
                    continue
                if all(row.get(c) == candidate.get(c) for c in columns):
                    raise _unique_violation(self.table_name, columns)

    def _new_row(self, values):
        row = {"id": str(uuid.uuid4()), "created_at": _created_at()}
        for column in NOW_DEFAULTS.get(self.table_name, ()):
            row[column] = row["created_at"]
        row.update(copy.deepcopy(TABLE_DEFAULTS.get(self.table_name, {})))
        row.update(copy.deepcopy(values))
        return row

    def _insert(self, payload):
        items = payload if isinstance(payload, list) else [payload]
        new_rows = []
        for values in items:
            row = self._new_row(values)
            self._check_unique(row)
            for pending in new_rows:
                for columns, predicate in UNIQUE_CONSTRAINTS.get(self.table_name, []):
                    if predicate and not (predicate(row) and predicate(pending)):
                        continue
                    if all(pending.get(c) == row.get(c) for c in columns):
                        raise _unique_violation(self.table_name, columns)
            new_rows.append(row)
        self.rows.extend(new_rows)
        return new_rows

    def _update(self, payload):
        updated = []
        for row in self._matching():
            candidate = {**row, **copy.deepcopy(payload)}
            self._check_unique(candidate, ignore=row)
            row.update(copy.deepcopy(payload))
            updated.append(row)
        return updated

    def _upsert(self, payload):
        items = payload if isinstance(payload, list) else [payload]
        affected = []
        for values in items:
            existing = next(
                (row for row in self.rows if all(row.get(c) == values.get(c) for c in self.on_conflict)),
                None
            )
            if existing is None:
                affected.extend(self._insert(values))
            elif not self.ignore_duplicates:
                existing.update(copy.deepcopy(values))
                affected.append(existing)
        return affected

    def execute(self):
        if self.action == "insert":
            data = self._insert(self.payload)
        elif self.action == "update":
            data = self._update(self.payload)
        elif self.action == "upsert":
            data = self._upsert(self.payload)
        elif self.action == "delete":
            data = self._matching()
            self.db.tables[self.table_name] = [row for row in self.rows if row not in data]
        else:
            data = self._matching()
            for column, desc in reversed(self.orders):
                data.sort(
                    key=lambda row: (row.get(column) is None, _comparable(row.get(column))),
                    reverse=desc
                )
            data = data[self.offset_count:]
            if self.limit_count is not None:
                data = data[:self.limit_count]
        data = [self._project(row) for row in data] if self.action == "select" else copy.deepcopy(data)
        return SimpleNamespace(data=data, count=len(data))


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path, content, file_options=None):
        self.storage.files[(self.name, path)] = content
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files = {}

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeAuth:
    """Email/password accounts; access tokens are 'token-<user id>'."""

    def __init__(self):
        self.users = {}

    def _session_response(self, user):
        session = SimpleNamespace(
            access_token=f"token-{user.id}",
            refresh_token=f"refresh-{user.id}",
            expires_in=3600
        )
        return SimpleNamespace(user=user, session=session)

    def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.users:
            raise Exception("User already registered")
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata=credentials.get("options", {}).get("data", {}),
            app_metadata={},
            password=credentials["password"]
        )
        self.users[email] = user
        return self._session_response(user)

    def sign_in_with_password(self, credentials):
        user = self.users.get(credentials["email"])
        if not user or user.password != credentials["password"]:
            raise Exception("Invalid login credentials")
        return self._session_response(user)

    def refresh_session(self, refresh_token):
        for user in self.users.values():
            if refresh_token == f"refresh-{user.id}":
                return self._session_response(user)
        raise Exception("Invalid Refresh Token")

    def get_user(self, jwt=None):
        for user in self.users.values():
            if jwt == f"token-{user.id}":
                return SimpleNamespace(user=user)
        raise Exception("invalid JWT")

    def sign_out(self):
        return None


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.auth = FakeAuth()
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)

    def seed(self, table, **values):
        """Insert one row directly and return it"""
        return FakeQuery(self, table).insert(values).execute().data[0]

    def rows(self, table, **filters):
        return [
            row for row in self.tables.get(table, [])
            if all(row.get(k) == v for k, v in filters.items())
        ]
