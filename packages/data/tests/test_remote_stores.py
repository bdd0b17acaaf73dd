"""Tests for remote record stores."""

import re

import pytest
from aioresponses import aioresponses
from yarl import URL

from gradeledger_common import ValidationError
from gradeledger_data import Identity
from gradeledger_data.exceptions import BackendNotFoundError, NetworkError
from gradeledger_data.remote import (
    HTTPRemoteRecordStore,
    InMemoryRemoteStore,
    RecordPage,
    RemoteRecordStore,
    create_remote_store,
)

BASE_URL = "https://grading.test"
RECORDS_URL = f"{BASE_URL}/api/sync/records"
RECORDS_PATTERN = re.compile(r"^https://grading\.test/api/sync/records(\?.*)?$")


class TestInMemoryRemoteStore:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, remote, identity, make_record):
        created = await remote.create_batch(
            identity, [make_record("a", 1000), make_record("b", 2000)], "key-1"
        )
        page = await remote.fetch_page(identity, page=1, limit=10)

        assert created == 2
        assert [r.id for r in page.records] == ["a", "b"]
        assert all(r.synced for r in page.records)
        assert page.total == 2
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_replayed_key_creates_nothing(self, remote, identity, make_record):
        batch = [make_record("a", 1000)]
        assert await remote.create_batch(identity, batch, "key-1") == 1
        assert await remote.create_batch(identity, batch, "key-1") == 0
        assert len(remote.records_for(identity)) == 1

    @pytest.mark.asyncio
    async def test_keys_are_per_identity(self, remote, identity, make_record):
        other = Identity("device-2")
        await remote.create_batch(identity, [make_record("a", 1000)], "key-1")
        assert await remote.create_batch(other, [make_record("a", 1000)], "key-1") == 1
        assert len(remote.records_for(other)) == 1

    @pytest.mark.asyncio
    async def test_pagination(self, remote, identity, make_record):
        remote.seed(identity, [make_record(f"r{i}", 1000 * i) for i in range(5)])

        first = await remote.fetch_page(identity, page=1, limit=2)
        last = await remote.fetch_page(identity, page=3, limit=2)

        assert first.total_pages == 3
        assert first.has_more is True
        assert [r.id for r in last.records] == ["r4"]
        assert last.has_more is False

    @pytest.mark.asyncio
    async def test_filters(self, remote, identity, make_record):
        remote.seed(identity, [
            make_record("a", 1000),
            make_record("b", 2000, question_key="q2"),
            make_record("c", 3000, question_key=None, question_no="5"),
        ])

        assert [r.id for r in (await remote.fetch_page(identity, question_key="q2")).records] == ["b"]
        assert [r.id for r in (await remote.fetch_page(identity, question_no="5")).records] == ["c"]

    @pytest.mark.asyncio
    async def test_delete_by_filter(self, remote, identity, make_record):
        remote.seed(identity, [make_record("a", 1000), make_record("b", 2000, question_key="q2")])

        assert await remote.delete_by_filter(identity, question_key="q1") == 1
        assert [r.id for r in remote.records_for(identity)] == ["b"]

    @pytest.mark.asyncio
    async def test_delete_requires_filter(self, remote, identity):
        with pytest.raises(ValidationError):
            await remote.delete_by_filter(identity)

    @pytest.mark.asyncio
    async def test_batch_limit(self, remote, identity, make_record):
        records = [make_record(f"r{i}", i) for i in range(101)]
        with pytest.raises(ValidationError):
            await remote.create_batch(identity, records, "too-big")

    @pytest.mark.asyncio
    async def test_injected_failure_has_no_effect(self, remote, identity, make_record):
        remote.inject_fault("create_batch", "fail")
        with pytest.raises(NetworkError):
            await remote.create_batch(identity, [make_record("a", 1000)], "key-1")
        assert remote.records_for(identity) == []
        assert await remote.create_batch(identity, [make_record("a", 1000)], "key-1") == 1

    @pytest.mark.asyncio
    async def test_lost_response_still_commits(self, remote, identity, make_record):
        remote.inject_fault("create_batch", "lost_response")
        with pytest.raises(NetworkError):
            await remote.create_batch(identity, [make_record("a", 1000)], "key-1")
        assert len(remote.records_for(identity)) == 1

    def test_unknown_fault_mode(self, remote):
        with pytest.raises(ValueError, match="fail"):
            remote.inject_fault("create_batch", "explode")

    def test_satisfies_protocol(self, remote):
        assert isinstance(remote, RemoteRecordStore)


class TestHTTPRemoteRecordStoreConfiguration:

    def test_from_config(self):
        store = HTTPRemoteRecordStore.from_config({"base_url": f"{BASE_URL}/", "timeout": 5})
        assert store.base_url == BASE_URL
        assert store._timeout == 5

    def test_factory(self):
        assert isinstance(create_remote_store("http", {"base_url": BASE_URL}), HTTPRemoteRecordStore)
        assert isinstance(create_remote_store("memory"), InMemoryRemoteStore)

    def test_factory_unknown(self):
        with pytest.raises(BackendNotFoundError) as exc_info:
            create_remote_store("grpc")
        assert "http" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_requires_initialize(self, identity):
        store = HTTPRemoteRecordStore(base_url=BASE_URL)
        with pytest.raises(RuntimeError, match="not initialized"):
            await store.fetch_page(identity)


class TestHTTPRemoteRecordStoreOperations:
    """Operations against a mocked grading service."""

    @pytest.fixture
    def mock_responses(self):
        with aioresponses() as m:
            yield m

    @pytest.fixture
    async def store(self, mock_responses):
        store = HTTPRemoteRecordStore(base_url=BASE_URL)
        await store.initialize()
        yield store
        await store.close()

    @pytest.mark.asyncio
    async def test_create_batch_sends_headers(self, store, mock_responses, identity, make_record):
        mock_responses.post(RECORDS_URL, payload={"success": True, "data": {"created": 1}})

        created = await store.create_batch(identity, [make_record("a", 1000)], "key-1")

        assert created == 1
        call = mock_responses.requests[("POST", URL(RECORDS_URL))][0]
        headers = call.kwargs["headers"]
        assert headers["idempotency-key"] == "key-1"
        assert headers["x-device-id"] == "device-1"
        assert headers["x-activation-code"] == "CODE-123"
        assert call.kwargs["json"]["records"][0]["id"] == "a"

    @pytest.mark.asyncio
    async def test_fetch_page(self, store, mock_responses, identity):
        mock_responses.get(
            RECORDS_PATTERN,
            payload={
                "success": True,
                "data": {
                    "records": [{"id": "r1", "studentName": "Ann", "timestamp": 1000}],
                    "total": 3,
                    "page": 1,
                    "limit": 1,
                    "totalPages": 3,
                },
            },
        )

        page = await store.fetch_page(identity, page=1, limit=1, question_key="q1")

        assert isinstance(page, RecordPage)
        assert page.records[0].student_name == "Ann"
        assert page.records[0].synced is True
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_delete_by_filter(self, store, mock_responses, identity):
        mock_responses.delete(RECORDS_PATTERN, payload={"success": True, "data": {"deleted": 4}})
        assert await store.delete_by_filter(identity, question_no="3") == 4

    @pytest.mark.asyncio
    async def test_http_error_raises_network_error(self, store, mock_responses, identity):
        mock_responses.get(RECORDS_PATTERN, status=503, body="unavailable")

        with pytest.raises(NetworkError) as exc_info:
            await store.fetch_page(identity)

        assert exc_info.value.status == 503
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_rejected_envelope(self, store, mock_responses, identity, make_record):
        mock_responses.post(
            RECORDS_URL, payload={"success": False, "message": "activation code expired"}
        )

        with pytest.raises(NetworkError, match="activation code expired") as exc_info:
            await store.create_batch(identity, [make_record("a", 1000)], "key-1")
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_timeout_raises_network_error(self, store, mock_responses, identity):
        import asyncio

        mock_responses.get(RECORDS_PATTERN, exception=asyncio.TimeoutError())

        with pytest.raises(NetworkError, match="timed out"):
            await store.fetch_page(identity)
