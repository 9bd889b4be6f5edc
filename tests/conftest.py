"""
Pytest configuration and fixtures for the club service tests
"""

import copy
import uuid
import pytest
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from database.document_store import (  # noqa: E402
    SERVER_TIMESTAMP,
    DocumentAlreadyExists,
    DocumentStore,
    DocumentStoreError,
    TransientStoreError,
)
from app.club.config import MEMBER_PROFILES, USERS  # noqa: E402
from app.club.dependencies import ActorContext  # noqa: E402
from app.club.models import ClubRole  # noqa: E402


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def _sort_key(value):
    # None sorts last, like Postgres ascending order
    return (value is None, value)


class InMemoryDocumentStore(DocumentStore):
    """
    DocumentStore fake with the same contract as SupabaseDocumentStore.

    fail_next(method, collection, error) makes the next matching call raise.
    `writes` records every successful create/update/delete.
    """

    def __init__(self, clock):
        self.clock = clock
        self.collections = {}
        self.writes = []
        self._failures = []

    # ---------- test helpers ----------

    def put(self, collection, document):
        self.collections.setdefault(collection, {})[document["id"]] = copy.deepcopy(document)

    def raw(self, collection, document_id):
        return self.collections.get(collection, {}).get(document_id)

    def all(self, collection):
        return list(self.collections.get(collection, {}).values())

    def fail_next(self, method, collection, error=None):
        self._failures.append((method, collection, error or TransientStoreError("backend down")))

    def _maybe_fail(self, method, collection):
        for i, (m, c, error) in enumerate(self._failures):
            if m == method and c == collection:
                del self._failures[i]
                raise error

    def _resolve(self, data):
        return {
            k: (self.clock() if v is SERVER_TIMESTAMP else copy.deepcopy(v))
            for k, v in data.items()
        }

    # ---------- DocumentStore ----------

    async def get_document(self, collection, document_id):
        self._maybe_fail("get", collection)
        doc = self.raw(collection, document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def create_document(self, collection, data, document_id=None):
        self._maybe_fail("create", collection)
        document_id = document_id or str(uuid.uuid4())
        table = self.collections.setdefault(collection, {})
        if document_id in table:
            raise DocumentAlreadyExists(f"{collection}/{document_id}")
        table[document_id] = {**self._resolve(data), "id": document_id}
        self.writes.append(("create", collection, document_id))
        return document_id

    async def update_document(self, collection, document_id, data, expected=None):
        self._maybe_fail("update", collection)
        doc = self.raw(collection, document_id)
        if doc is None:
            return None
        for field, value in (expected or {}).items():
            if doc.get(field) != value:
                return None
        doc.update(self._resolve(data))
        self.writes.append(("update", collection, document_id))
        return copy.deepcopy(doc)

    async def delete_document(self, collection, document_id):
        self._maybe_fail("delete", collection)
        table = self.collections.get(collection, {})
        if document_id not in table:
            return False
        del table[document_id]
        self.writes.append(("delete", collection, document_id))
        return True

    async def query_documents(self, collection, predicates=(), order_by=None, descending=False, limit=None):
        self._maybe_fail("query", collection)
        docs = [d for d in self.all(collection) if all(_matches(d, p) for p in predicates)]
        if order_by:
            docs.sort(key=lambda d: _sort_key(d.get(order_by)), reverse=descending)
        if limit:
            docs = docs[:limit]
        return copy.deepcopy(docs)


def _matches(doc, predicate):
    value = doc.get(predicate.field)
    target = predicate.value
    op = predicate.op
    if op == "==":
        return value == target
    if op == "!=":
        return value != target
    if op == "in":
        return value in target
    if op == "contains":
        return target in (value or [])
    if value is None:
        return False
    if op == "<":
        return value < target
    if op == "<=":
        return value <= target
    if op == ">":
        return value > target
    if op == ">=":
        return value >= target
    raise DocumentStoreError(f"unsupported operator {op}")


# =============================================
# Fixtures
# =============================================

# Monday
NOW = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def clock():
    return FrozenClock(NOW)


@pytest.fixture(scope="function")
def store(clock):
    return InMemoryDocumentStore(clock)


@pytest.fixture(scope="session")
def admin_actor():
    return ActorContext("admin-1", "Alex Admin", ClubRole.admin)


@pytest.fixture(scope="session")
def coach_actor():
    return ActorContext("coach-1", "Casey Coach", ClubRole.coach)


@pytest.fixture(scope="session")
def member_actor():
    return ActorContext("member-1", "Morgan Member", ClubRole.member)


@pytest.fixture(scope="session")
def guest_actor():
    return ActorContext("guest-1", "Gale Guest", ClubRole.guest)


@pytest.fixture(scope="function")
def make_member(store, clock):
    """
    Seed a users row and a member profile.

    Defaults to an active three-days-weekly member with nothing used yet.
    Keyword arguments override profile fields.
    """
    def _make(member_id="member-1", display_name="Morgan Member", **profile):
        now = clock()
        store.put(USERS, {
            "id": member_id,
            "display_name": display_name,
            "email": f"{member_id}@example.com",
            "phone": "",
            "role": "member",
            "membership_type": profile.get("membership_type", "three-days-weekly"),
            "membership_status": profile.get("membership_status", "active"),
            "membership_expiration": profile.get("membership_expiration", now + timedelta(days=20)),
        })
        store.put(MEMBER_PROFILES, {
            "id": member_id,
            "display_name": display_name,
            "membership_type": "three-days-weekly",
            "membership_status": "active",
            "membership_expiration": now + timedelta(days=20),
            "days_used_this_week": 0,
            "days_used_this_month": 0,
            "weekly_reset_date": now + timedelta(days=3),
            "monthly_reset_date": now + timedelta(days=20),
            "current_attendance_id": None,
            "last_visit": None,
            "payment_history": [],
            **profile,
        })
        return member_id

    return _make


@pytest.fixture(scope="function")
def attendance_service(store, clock):
    from app.club.attendance.service import AttendanceService
    return AttendanceService(store, clock=clock)


@pytest.fixture(scope="function")
def payment_service(store, clock):
    from app.club.payments.service import PaymentService
    return PaymentService(store, clock=clock)


@pytest.fixture(scope="function")
def member_service(store, clock):
    from app.club.members.service import MemberService
    return MemberService(store, clock=clock)


@pytest.fixture(scope="function")
def session_service(store, clock):
    from app.club.sessions.service import SessionService
    return SessionService(store, clock=clock)


@pytest.fixture(scope="function")
def reconciler(store, clock):
    from app.club.reconciliation import AttendanceReconciler
    return AttendanceReconciler(store, clock=clock)
