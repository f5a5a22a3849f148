"""Tests for the Cassandra course store."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from coursegate.access.models import ResourceKind
from coursegate.courses import store as store_module
from coursegate.courses.store import CassandraCourseStore


def result_of(row):
    result = Mock()
    result.one.return_value = row
    return result


def course_row(teacher_id=None, students=None, price=Decimal("20")):
    return Mock(
        id=uuid4(),
        title="Pharmacology",
        teacher_id=teacher_id or uuid4(),
        price=price,
        students_enrolled=students,
    )


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(return_value=Mock())
    session.aexecute = AsyncMock(return_value=result_of(None))
    return session


@pytest.fixture
def mock_redis():
    """Mock Redis client."""
    redis_mock = AsyncMock()
    redis_mock.get = AsyncMock(return_value=None)
    redis_mock.setex = AsyncMock()
    return redis_mock


@pytest.fixture
def store(mock_session, mock_redis) -> CassandraCourseStore:
    return CassandraCourseStore(
        session=mock_session, keyspace="test_keyspace", redis=mock_redis
    )


class TestGetResource:
    """Tests for descriptor loading."""

    @pytest.mark.asyncio
    async def test_cache_miss_reads_and_caches_meta(
        self, mock_session, mock_redis, store
    ) -> None:
        student_id = uuid4()
        course = course_row(students={student_id})
        resource_id = uuid4()
        resource = Mock(
            id=resource_id,
            course_id=course.id,
            kind="video",
            is_preview=False,
            location="media/a.mp4",
        )
        mock_session.aexecute.side_effect = [result_of(resource), result_of(course)]

        descriptor = await store.get_resource(resource_id)

        assert descriptor.kind == ResourceKind.VIDEO
        assert descriptor.owner_id == course.teacher_id
        assert descriptor.enrolled_principal_ids == frozenset({student_id})
        assert descriptor.location == "media/a.mp4"
        key, ttl, payload = mock_redis.setex.await_args.args
        assert key == f"resource:{resource_id}"
        assert ttl == 300
        assert json.loads(payload)["course_id"] == str(course.id)

    @pytest.mark.asyncio
    async def test_cache_hit_still_reads_course_fresh(
        self, mock_session, mock_redis, store
    ) -> None:
        course = course_row(students=None)
        resource_id = uuid4()
        mock_redis.get.return_value = json.dumps(
            {
                "course_id": str(course.id),
                "kind": "quiz",
                "is_preview": True,
                "location": None,
            }
        )
        mock_session.aexecute.return_value = result_of(course)

        descriptor = await store.get_resource(resource_id)

        assert descriptor.kind == ResourceKind.QUIZ
        assert descriptor.is_preview is True
        assert descriptor.enrolled_principal_ids == frozenset()
        mock_session.aexecute.assert_awaited_once()
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_resource(self, store) -> None:
        assert await store.get_resource(uuid4()) is None

    @pytest.mark.asyncio
    async def test_orphaned_resource(self, mock_session, mock_redis) -> None:
        store = CassandraCourseStore(session=mock_session, keyspace="ks")
        resource = Mock(
            id=uuid4(), course_id=uuid4(), kind="video", is_preview=False, location=None
        )
        mock_session.aexecute.side_effect = [result_of(resource), result_of(None)]

        assert await store.get_resource(resource.id) is None


class TestEntitlement:
    """Tests for the entitlement pair."""

    @pytest.mark.asyncio
    async def test_is_enrolled_reads_course_side(self, mock_session, store) -> None:
        student_id = uuid4()
        mock_session.aexecute.return_value = result_of(course_row(students={student_id}))

        assert await store.is_enrolled(uuid4(), student_id) is True
        assert await store.is_enrolled(uuid4(), uuid4()) is False

    @pytest.mark.asyncio
    async def test_has_entitlement_needs_both_sides(self, mock_session, store) -> None:
        student_id = uuid4()
        course = course_row(students={student_id})
        mock_session.aexecute.side_effect = [
            result_of(course),
            result_of(Mock(enrolled_courses=None)),
            result_of(course),
            result_of(Mock(enrolled_courses={course.id})),
        ]

        assert await store.has_entitlement(course.id, student_id) is False
        assert await store.has_entitlement(course.id, student_id) is True

    @pytest.mark.asyncio
    async def test_grant_writes_one_logged_batch(
        self, mock_session, store, monkeypatch
    ) -> None:
        batch = Mock()
        batch_cls = Mock(return_value=batch)
        monkeypatch.setattr(store_module, "BatchStatement", batch_cls)
        course_id, student_id = uuid4(), uuid4()

        await store.grant_entitlement(course_id, student_id)

        batch_cls.assert_called_once_with(batch_type=store_module.BatchType.LOGGED)
        assert batch.add.call_count == 2
        first, second = (call.args[1] for call in batch.add.call_args_list)
        assert first == [{student_id}, course_id]
        assert second == [{course_id}, student_id]
        mock_session.aexecute.assert_awaited_once_with(batch)
