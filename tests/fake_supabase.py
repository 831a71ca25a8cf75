"""
In-memory stand-in for the async Supabase client.

Covers the parts of the client the API uses: the PostgREST query builder
(select/insert/update/delete with eq/neq/in_/ilike/order/limit and exact
counts), auth (sign_up, sign_in_with_password, get_user, refresh_session)
and storage (upload, get_public_url). Unique constraints and ON DELETE
CASCADE follow the SQL in the ``models.py`` modules.
"""

import re
import uuid
import copy
import time
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
from postgrest.exceptions import APIError
from supabase import AuthApiError


UNIQUE = {
    "users": [("username",)],
    "likes": [("user_id", "post_id")],
    "follows": [("follower_id", "following_id")],
    "conversation_members": [("conversation_id", "user_id")],
    "direct_conversations": [("conversation_id",), ("user1_id", "user2_id")],
}

CASCADE = {
    "conversations": [
        ("conversation_members", "conversation_id"),
        ("direct_conversations", "conversation_id"),
        ("messages", "conversation_id"),
    ],
    "posts": [("likes", "post_id")],
}

DEFAULTS = {
    "posts": {"likes": 0, "tags": None, "visibility": "public"},
}

# tables whose primary key is not a generated ``id``
NO_ID = {"direct_conversations"}

UUID_COLUMNS = {
    "id",
    "user_id",
    "post_id",
    "follower_id",
    "following_id",
    "conversation_id",
    "sender_id",
    "receiver_id",
    "created_by",
    "user1_id",
    "user2_id",
}


def like_to_regex(pattern):
    """SQL LIKE pattern (with backslash escapes) as an anchored regex."""
    parts = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "^" + "".join(parts) + "$"


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db, table):
        self._db = db
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.count = None
        self.payload = None
        self.filters = []
        self.ordering = None
        self.row_limit = None

    def select(self, columns="*", count=None):
        self.op = "select"
        self.columns = columns
        self.count = count
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        return self

    def neq(self, column, value):
        self.filters.append(("neq", column, value))
        return self

    def in_(self, column, values):
        self.filters.append(("in", column, list(values)))
        return self

    def ilike(self, column, pattern):
        self.filters.append(("ilike", column, pattern))
        return self

    def order(self, column, desc=False):
        self.ordering = (column, desc)
        return self

    def limit(self, size):
        self.row_limit = size
        return self

    def matches(self, row):
        for kind, column, value in self.filters:
            current = row.get(column)
            if kind == "eq" and current != value:
                return False
            if kind == "neq" and current == value:
                return False
            if kind == "in" and current not in value:
                return False
            if kind == "ilike":
                if current is None or not re.match(like_to_regex(value), current, re.IGNORECASE):
                    return False
        return True

    async def execute(self):
        return self._db.run(self)


class FakeDatabase:
    def __init__(self):
        self.tables = {}
        self.failures = []
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def fail_when(self, table, op="select", error=None, **match):
        """
        Make matching queries raise ``error`` (an APIError by default),
        e.g. fail_when("messages", conversation_id=x).
        """
        self.failures.append((table, op, error, match))

    def _check_failures(self, query):
        eq_filters = {column: value for kind, column, value in query.filters if kind == "eq"}
        for table, op, error, match in self.failures:
            if table != query.table or op != query.op:
                continue
            if all(eq_filters.get(column) == value for column, value in match.items()):
                if error is not None:
                    raise error
                raise APIError({"message": f"simulated failure on {table}", "code": "XX000"})

    def _check_uuid_filters(self, query):
        for kind, column, value in query.filters:
            if column not in UUID_COLUMNS or kind not in ("eq", "neq", "in"):
                continue
            for candidate in value if kind == "in" else [value]:
                try:
                    uuid.UUID(str(candidate))
                except ValueError:
                    raise APIError(
                        {
                            "message": f'invalid input syntax for type uuid: "{candidate}"',
                            "code": "22P02",
                        }
                    )

    def _unique_error(self, table, constraint):
        return APIError(
            {
                "message": f'duplicate key value violates unique constraint "{table}_{"_".join(constraint)}_key"',
                "code": "23505",
            }
        )

    def _check_unique(self, table, candidates, existing):
        for constraint in UNIQUE.get(table, []):
            seen = {tuple(row.get(col) for col in constraint) for row in existing}
            for row in candidates:
                key = tuple(row.get(col) for col in constraint)
                if key in seen:
                    raise self._unique_error(table, constraint)
                seen.add(key)

    def _project(self, rows, columns):
        if columns.strip() == "*":
            return [copy.deepcopy(row) for row in rows]
        names = [name.strip() for name in columns.split(",") if name.strip()]
        return [{name: copy.deepcopy(row.get(name)) for name in names} for row in rows]

    def _delete_cascade(self, table, removed):
        for child, column in CASCADE.get(table, []):
            ids = {row["id"] for row in removed}
            child_rows = self.rows(child)
            gone = [row for row in child_rows if row.get(column) in ids]
            self.tables[child] = [row for row in child_rows if row.get(column) not in ids]
            self._delete_cascade(child, gone)

    def insert_rows(self, table, payload):
        rows = payload if isinstance(payload, list) else [payload]
        prepared = []
        for row in rows:
            new_row = {**DEFAULTS.get(table, {}), **copy.deepcopy(row)}
            if table not in NO_ID:
                new_row.setdefault("id", str(uuid.uuid4()))
            new_row.setdefault("created_at", self.now())
            prepared.append(new_row)

        self._check_unique(table, prepared, self.rows(table))
        self.rows(table).extend(prepared)
        return copy.deepcopy(prepared)

    def run(self, query):
        self._check_failures(query)
        self._check_uuid_filters(query)
        table = self.rows(query.table)

        if query.op == "insert":
            return FakeResponse(self.insert_rows(query.table, query.payload))

        matched = [row for row in table if query.matches(row)]

        if query.op == "update":
            others = [row for row in table if not query.matches(row)]
            updated = [{**row, **copy.deepcopy(query.payload)} for row in matched]
            self._check_unique(query.table, updated, others)
            for row in matched:
                row.update(copy.deepcopy(query.payload))
            return FakeResponse(copy.deepcopy(matched))

        if query.op == "delete":
            self.tables[query.table] = [row for row in table if not query.matches(row)]
            self._delete_cascade(query.table, matched)
            return FakeResponse(copy.deepcopy(matched))

        if query.ordering:
            column, desc = query.ordering
            present = [row for row in matched if row.get(column) is not None]
            missing = [row for row in matched if row.get(column) is None]
            matched = sorted(present, key=lambda row: row[column], reverse=desc) + missing

        total = len(matched)
        if query.row_limit is not None:
            matched = matched[: query.row_limit]

        return FakeResponse(
            self._project(matched, query.columns),
            count=total if query.count else None,
        )


class FakeAuth:
    def __init__(self, url, jwt_secret=None):
        self.issuer = f"{url}/auth/v1"
        self.jwt_secret = jwt_secret
        self.accounts = {}
        self.access_tokens = {}
        self.refresh_tokens = {}

    def _user(self, account):
        return SimpleNamespace(id=account["id"], email=account["email"])

    def issue_session(self, account):
        if self.jwt_secret:
            access_token = jwt.encode(
                {
                    "sub": account["id"],
                    "email": account["email"],
                    "iss": self.issuer,
                    "exp": int(time.time()) + 3600,
                    "jti": str(uuid.uuid4()),
                },
                self.jwt_secret,
                algorithm="HS256",
            )
        else:
            access_token = f"access-{uuid.uuid4()}"

        refresh_token = f"refresh-{uuid.uuid4()}"
        self.access_tokens[access_token] = account["id"]
        self.refresh_tokens[refresh_token] = account["id"]

        return SimpleNamespace(
            access_token=access_token, refresh_token=refresh_token, expires_in=3600
        )

    def create_account(self, email, password, user_id=None):
        account = {"id": user_id or str(uuid.uuid4()), "email": email, "password": password}
        self.accounts[email] = account
        return account

    def _by_id(self, user_id):
        return next(a for a in self.accounts.values() if a["id"] == user_id)

    async def sign_up(self, credentials):
        if credentials["email"] in self.accounts:
            raise AuthApiError("User already registered", 422, "user_already_exists")
        account = self.create_account(credentials["email"], credentials["password"])
        return SimpleNamespace(user=self._user(account), session=None)

    async def sign_in_with_password(self, credentials):
        account = self.accounts.get(credentials["email"])
        if account is None or account["password"] != credentials["password"]:
            raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        return SimpleNamespace(user=self._user(account), session=self.issue_session(account))

    async def get_user(self, jwt=None):
        user_id = self.access_tokens.get(jwt)
        if user_id is None:
            raise AuthApiError("invalid JWT", 401, "bad_jwt")
        return SimpleNamespace(user=self._user(self._by_id(user_id)))

    async def refresh_session(self, refresh_token=None):
        user_id = self.refresh_tokens.pop(refresh_token, None)
        if user_id is None:
            raise AuthApiError("Invalid Refresh Token", 400, "refresh_token_not_found")
        account = self._by_id(user_id)
        return SimpleNamespace(user=self._user(account), session=self.issue_session(account))


class FakeBucket:
    def __init__(self, storage, name):
        self._storage = storage
        self.name = name

    async def upload(self, path, file, file_options=None):
        key = (self.name, path)
        if key in self._storage.objects:
            raise RuntimeError("The resource already exists")
        self._storage.objects[key] = (file, (file_options or {}).get("content-type"))
        return SimpleNamespace(path=path, full_path=f"{self.name}/{path}")

    async def get_public_url(self, path, options=None):
        return f"{self._storage.url}/storage/v1/object/public/{self.name}/{path}"


class FakeStorage:
    def __init__(self, url):
        self.url = url
        self.objects = {}
        self.fail_uploads = False

    def from_(self, bucket):
        if self.fail_uploads:
            return FailingBucket(self, bucket)
        return FakeBucket(self, bucket)


class FailingBucket(FakeBucket):
    async def upload(self, path, file, file_options=None):
        raise RuntimeError("storage unavailable")


class FakeSupabase:
    def __init__(self, url="https://project.supabase.co", jwt_secret=None):
        self.url = url
        self.db = FakeDatabase()
        self.auth = FakeAuth(url, jwt_secret)
        self.storage = FakeStorage(url)

    def table(self, name):
        return FakeQuery(self.db, name)

    from_ = table
