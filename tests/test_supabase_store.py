"""
Supabase document store tests - mocked client
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
from postgrest.exceptions import APIError

from database.document_store import (
    SERVER_TIMESTAMP,
    DocumentAlreadyExists,
    DocumentStoreError,
    Predicate,
    TransientStoreError,
)
from database.supabase_client import SupabaseDocumentStore, _serialize


def chain_query(result_data=None):
    """Query builder mock whose filter methods all return itself"""
    query = MagicMock()
    for method in ("select", "insert", "update", "delete", "eq", "neq", "lt", "lte",
                   "gt", "gte", "in_", "contains", "is_", "order", "limit"):
        getattr(query, method).return_value = query
    query.not_.is_.return_value = query
    query.execute.return_value = MagicMock(data=result_data if result_data is not None else [])
    return query


@pytest.fixture
def query():
    return chain_query()


@pytest.fixture
def store(query):
    client = MagicMock()
    client.table.return_value = query
    return SupabaseDocumentStore(client=client, timeout=1.0, retry_delay=0)


class TestSerialize:

    def test_values(self):
        when = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)
        assert _serialize(SERVER_TIMESTAMP) == "now"
        assert _serialize(when) == "2024-03-04T10:00:00+00:00"
        assert _serialize({"a": [when], "b": {"c": SERVER_TIMESTAMP}}) == {
            "a": ["2024-03-04T10:00:00+00:00"],
            "b": {"c": "now"},
        }
        assert _serialize(3) == 3


class TestDocuments:

    @pytest.mark.asyncio
    async def test_get(self, store, query):
        query.execute.return_value = MagicMock(data=[{"id": "m-1", "display_name": "Amy"}])

        doc = await store.get_document("users", "m-1")

        assert doc == {"id": "m-1", "display_name": "Amy"}
        store.client.table.assert_called_with("users")
        query.eq.assert_called_with("id", "m-1")

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get_document("users", "nobody") is None

    @pytest.mark.asyncio
    async def test_create_with_id(self, store, query):
        document_id = await store.create_document(
            "attendance", {"status": "checked-in", "created_at": SERVER_TIMESTAMP}, "a-1"
        )

        assert document_id == "a-1"
        query.insert.assert_called_with({"status": "checked-in", "created_at": "now", "id": "a-1"})

    @pytest.mark.asyncio
    async def test_create_generates_id(self, store, query):
        document_id = await store.create_document("payments", {"amount": 40})
        payload = query.insert.call_args[0][0]
        assert payload["id"] == document_id
        assert len(document_id) == 36

    @pytest.mark.asyncio
    async def test_duplicate_id(self, store, query):
        query.execute.side_effect = APIError({"code": "23505", "message": "duplicate key", "details": "", "hint": ""})

        with pytest.raises(DocumentAlreadyExists):
            await store.create_document("payments", {"amount": 40}, "p-1")

    @pytest.mark.asyncio
    async def test_other_api_errors(self, store, query):
        query.execute.side_effect = APIError({"code": "42501", "message": "permission denied", "details": "", "hint": ""})

        with pytest.raises(DocumentStoreError) as exc:
            await store.get_document("users", "m-1")
        assert not isinstance(exc.value, TransientStoreError)

    @pytest.mark.asyncio
    async def test_conditional_update(self, store, query):
        query.execute.return_value = MagicMock(data=[{"id": "m-1", "current_attendance_id": "a-1"}])

        updated = await store.update_document(
            "member_profiles", "m-1",
            {"current_attendance_id": "a-1"},
            expected={"current_attendance_id": None, "days_used_this_week": 1},
        )

        assert updated["current_attendance_id"] == "a-1"
        query.update.assert_called_with({"current_attendance_id": "a-1"})
        query.eq.assert_any_call("id", "m-1")
        query.is_.assert_called_with("current_attendance_id", "null")
        query.eq.assert_any_call("days_used_this_week", 1)

    @pytest.mark.asyncio
    async def test_update_matching_nothing(self, store):
        assert await store.update_document("member_profiles", "m-1", {"x": 1}, {"y": 2}) is None

    @pytest.mark.asyncio
    async def test_delete(self, store, query):
        query.execute.return_value = MagicMock(data=[{"id": "s-1"}])
        assert await store.delete_document("sessions", "s-1") is True

        query.execute.return_value = MagicMock(data=[])
        assert await store.delete_document("sessions", "s-1") is False


class TestQuery:

    @pytest.mark.asyncio
    async def test_predicates_map_to_filters(self, store, query):
        start = datetime(2024, 3, 1, tzinfo=timezone.utc)

        await store.query_documents(
            "attendance",
            [
                Predicate("check_in_time", ">=", start),
                Predicate("check_in_time", "<", start),
                Predicate("status", "in", ("checked-in", "no-show")),
                Predicate("member_id", "!=", "m-2"),
                Predicate("current_attendance_id", "!=", None),
                Predicate("participants", "contains", "m-1"),
            ],
            order_by="check_in_time",
            descending=True,
            limit=50,
        )

        query.gte.assert_called_with("check_in_time", "2024-03-01T00:00:00+00:00")
        query.lt.assert_called_with("check_in_time", "2024-03-01T00:00:00+00:00")
        query.in_.assert_called_with("status", ["checked-in", "no-show"])
        query.neq.assert_called_with("member_id", "m-2")
        query.not_.is_.assert_called_with("current_attendance_id", "null")
        query.contains.assert_called_with("participants", ["m-1"])
        query.order.assert_called_with("check_in_time", desc=True)
        query.limit.assert_called_with(50)

    @pytest.mark.asyncio
    async def test_empty_result(self, store, query):
        query.execute.return_value = MagicMock(data=None)
        assert await store.query_documents("sessions") == []

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            Predicate("status", "like", "x")


class TestRetry:
    """One retry on transport errors, then TransientStoreError"""

    @pytest.mark.asyncio
    async def test_retry_succeeds(self, store, query):
        query.execute.side_effect = [
            httpx.ConnectError("connection refused"),
            MagicMock(data=[{"id": "m-1"}]),
        ]

        assert await store.get_document("users", "m-1") == {"id": "m-1"}
        assert query.execute.call_count == 2

    @pytest.mark.asyncio
    async def test_second_failure_is_transient(self, store, query):
        query.execute.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(TransientStoreError):
            await store.get_document("users", "m-1")
        assert query.execute.call_count == 2
