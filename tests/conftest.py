"""Shared fixtures: in-memory stores, principals and a controllable clock."""

import os
import tempfile
from collections import defaultdict
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4


# Settings are cached on first use; pin the test environment before that
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault(
    "LOG_DIR", str(Path(tempfile.gettempdir()) / "coursegate-test-logs")
)

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coursegate.access.dependencies import get_access_service  # noqa: E402
from coursegate.access.models import ResourceDescriptor, ResourceKind  # noqa: E402
from coursegate.access.service import AccessService  # noqa: E402
from coursegate.auth.dependencies import get_credential_verifier  # noqa: E402
from coursegate.auth.models import UserRecord  # noqa: E402
from coursegate.auth.permissions import Role  # noqa: E402
from coursegate.auth.principal import PrincipalContext  # noqa: E402
from coursegate.auth.security import create_access_token  # noqa: E402
from coursegate.auth.service import CredentialVerifier  # noqa: E402
from coursegate.courses.models import Course  # noqa: E402
from coursegate.enrollments.dependencies import get_enrollment_service  # noqa: E402
from coursegate.enrollments.gateway import ChargeResult  # noqa: E402
from coursegate.enrollments.models import (  # noqa: E402
    PaymentRecord,
    PaymentSlot,
    PaymentStatus,
    generate_transaction_id,
)
from coursegate.enrollments.service import EnrollmentService  # noqa: E402
from coursegate.main import create_app  # noqa: E402
from coursegate.progress.dependencies import get_progress_ledger  # noqa: E402
from coursegate.progress.models import CourseProgress  # noqa: E402
from coursegate.stream_tokens import CapabilityTokenCache  # noqa: E402


# ==============================================================================
# In-memory collaborators
# ==============================================================================


class FakeClock:
    """Clock returning a settable UNIX time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryUserDirectory:
    def __init__(self):
        self.users: dict[UUID, UserRecord] = {}

    def add(self, role: Role, active: bool = True) -> PrincipalContext:
        user = UserRecord(id=uuid4(), role=role, is_active=active)
        self.users[user.id] = user
        return user.to_principal()

    def block(self, user_id: UUID) -> None:
        self.users[user_id].is_active = False

    async def get_user(self, user_id: UUID) -> UserRecord | None:
        return self.users.get(user_id)


class InMemoryCourseStore:
    """Course store keeping both sides of the entitlement pair."""

    def __init__(self):
        self.courses: dict[UUID, Course] = {}
        self.resources: dict[UUID, dict[str, Any]] = {}
        self.student_courses: dict[UUID, set[UUID]] = defaultdict(set)
        self.grant_calls = 0

    def add_course(self, teacher_id: UUID, price: Decimal = Decimal(0)) -> Course:
        course = Course(id=uuid4(), teacher_id=teacher_id, title="Course", price=price)
        self.courses[course.id] = course
        return course

    def add_resource(
        self,
        course_id: UUID,
        kind: ResourceKind = ResourceKind.VIDEO,
        is_preview: bool = False,
        location: str | None = "media/lesson.mp4",
    ) -> UUID:
        resource_id = uuid4()
        self.resources[resource_id] = {
            "course_id": course_id,
            "kind": kind,
            "is_preview": is_preview,
            "location": location,
        }
        return resource_id

    def _descriptor(self, resource_id: UUID, meta: dict[str, Any]) -> ResourceDescriptor:
        course = self.courses[meta["course_id"]]
        return ResourceDescriptor(
            id=resource_id,
            kind=meta["kind"],
            course_id=course.id,
            owner_id=course.teacher_id,
            enrolled_principal_ids=frozenset(course.students_enrolled),
            is_preview=meta["is_preview"],
            location=meta["location"],
        )

    async def get_course(self, course_id: UUID) -> Course | None:
        return self.courses.get(course_id)

    async def get_resource(self, resource_id: UUID) -> ResourceDescriptor | None:
        meta = self.resources.get(resource_id)
        if meta is None:
            return None
        return self._descriptor(resource_id, meta)

    async def list_course_resources(self, course_id: UUID) -> list[ResourceDescriptor]:
        return [
            self._descriptor(rid, meta)
            for rid, meta in self.resources.items()
            if meta["course_id"] == course_id
        ]

    async def is_enrolled(self, course_id: UUID, student_id: UUID) -> bool:
        course = self.courses.get(course_id)
        return course is not None and student_id in course.students_enrolled

    async def has_entitlement(self, course_id: UUID, student_id: UUID) -> bool:
        return await self.is_enrolled(course_id, student_id) and (
            course_id in self.student_courses[student_id]
        )

    async def add_enrollment(self, course_id: UUID, student_id: UUID) -> None:
        self.courses[course_id].students_enrolled.add(student_id)

    async def add_enrolled_course(self, student_id: UUID, course_id: UUID) -> None:
        self.student_courses[student_id].add(course_id)

    async def grant_entitlement(self, course_id: UUID, student_id: UUID) -> None:
        self.grant_calls += 1
        await self.add_enrollment(course_id, student_id)
        await self.add_enrolled_course(student_id, course_id)


class InMemoryPaymentStore:
    """Payment store honouring the slot uniqueness and compare-and-set rules.

    Records are copied in and out, as a real store would serialize them.
    """

    def __init__(self):
        self.payments: dict[UUID, PaymentRecord] = {}
        self.slots: dict[tuple[UUID, UUID, PaymentSlot], UUID] = {}

    async def reserve_slot(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot, payment_id: UUID
    ) -> bool:
        key = (student_id, course_id, slot)
        if key in self.slots:
            return False
        self.slots[key] = payment_id
        return True

    async def release_slot(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot, payment_id: UUID
    ) -> None:
        key = (student_id, course_id, slot)
        if self.slots.get(key) == payment_id:
            del self.slots[key]

    async def get_slot_holder(
        self, student_id: UUID, course_id: UUID, slot: PaymentSlot
    ) -> UUID | None:
        return self.slots.get((student_id, course_id, slot))

    async def insert(self, payment: PaymentRecord) -> None:
        self.payments[payment.id] = replace(payment)

    async def get(self, payment_id: UUID) -> PaymentRecord | None:
        payment = self.payments.get(payment_id)
        return replace(payment) if payment else None

    async def update_status(self, payment: PaymentRecord, expected: PaymentStatus) -> bool:
        stored = self.payments.get(payment.id)
        if stored is None or stored.status != expected:
            return False
        self.payments[payment.id] = replace(payment)
        return True

    async def mark_enrollment_completed(self, payment_id: UUID) -> None:
        self.payments[payment_id].enrollment_completed = True

    async def list_by_student(self, student_id: UUID) -> list[PaymentRecord]:
        payments = [replace(p) for p in self.payments.values() if p.student_id == student_id]
        return sorted(payments, key=lambda p: p.created_at, reverse=True)

    async def list_all(
        self, status: PaymentStatus | None = None, limit: int = 50
    ) -> list[PaymentRecord]:
        payments = [
            replace(p)
            for p in self.payments.values()
            if status is None or p.status == status
        ]
        payments.sort(key=lambda p: p.created_at, reverse=True)
        return payments[:limit]


class InMemoryProgressLedger:
    def __init__(self):
        self.records: dict[tuple[UUID, UUID], CourseProgress] = {}

    async def ensure_progress_record(self, student_id: UUID, course_id: UUID) -> bool:
        key = (student_id, course_id)
        if key in self.records:
            return False
        self.records[key] = CourseProgress(student_id=student_id, course_id=course_id)
        return True

    async def get_progress(self, student_id: UUID, course_id: UUID) -> CourseProgress | None:
        return self.records.get((student_id, course_id))


class StubGateway:
    """Gateway with a scripted outcome."""

    def __init__(self, success: bool = True, error: Exception | None = None):
        self.success = success
        self.error = error
        self.charges: list[tuple[Decimal, dict[str, Any]]] = []

    async def charge(self, amount: Decimal, metadata: dict[str, Any]) -> ChargeResult:
        self.charges.append((amount, metadata))
        if self.error is not None:
            raise self.error
        return ChargeResult(transaction_id=generate_transaction_id(), success=self.success)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def users() -> InMemoryUserDirectory:
    return InMemoryUserDirectory()


@pytest.fixture
def course_store() -> InMemoryCourseStore:
    return InMemoryCourseStore()


@pytest.fixture
def payment_store() -> InMemoryPaymentStore:
    return InMemoryPaymentStore()


@pytest.fixture
def progress_ledger() -> InMemoryProgressLedger:
    return InMemoryProgressLedger()


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()


@pytest.fixture
def admin(users: InMemoryUserDirectory) -> PrincipalContext:
    return users.add(Role.ADMIN)


@pytest.fixture
def teacher(users: InMemoryUserDirectory) -> PrincipalContext:
    return users.add(Role.TEACHER)


@pytest.fixture
def student(users: InMemoryUserDirectory) -> PrincipalContext:
    return users.add(Role.STUDENT)


@pytest.fixture
def paid_course(course_store: InMemoryCourseStore, teacher: PrincipalContext) -> Course:
    return course_store.add_course(teacher.id, price=Decimal("49.99"))


@pytest.fixture
def free_course(course_store: InMemoryCourseStore, teacher: PrincipalContext) -> Course:
    return course_store.add_course(teacher.id, price=Decimal(0))


@pytest.fixture
def token_cache(clock: FakeClock) -> CapabilityTokenCache:
    return CapabilityTokenCache(clock=clock)


@pytest.fixture
def verifier(users: InMemoryUserDirectory) -> CredentialVerifier:
    return CredentialVerifier(users)


@pytest.fixture
def access_service(
    course_store: InMemoryCourseStore,
    token_cache: CapabilityTokenCache,
    verifier: CredentialVerifier,
) -> AccessService:
    return AccessService(
        courses=course_store,
        tokens=token_cache,
        verifier=verifier,
        recheck_principal=True,
    )


@pytest.fixture
def enrollment_service(
    payment_store: InMemoryPaymentStore,
    course_store: InMemoryCourseStore,
    progress_ledger: InMemoryProgressLedger,
    gateway: StubGateway,
) -> EnrollmentService:
    return EnrollmentService(
        payments=payment_store,
        courses=course_store,
        progress=progress_ledger,
        gateway=gateway,
    )


# ==============================================================================
# HTTP
# ==============================================================================


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a principal."""

    def _headers(principal: PrincipalContext) -> dict[str, str]:
        token = create_access_token(
            {"sub": str(principal.id), "role": principal.role.value}
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def app(
    verifier: CredentialVerifier,
    access_service: AccessService,
    enrollment_service: EnrollmentService,
    progress_ledger: InMemoryProgressLedger,
    token_cache: CapabilityTokenCache,
) -> FastAPI:
    """Application wired to the in-memory collaborators, lifespan not run."""
    app = create_app()
    app.dependency_overrides[get_credential_verifier] = lambda: verifier
    app.dependency_overrides[get_access_service] = lambda: access_service
    app.dependency_overrides[get_enrollment_service] = lambda: enrollment_service
    app.dependency_overrides[get_progress_ledger] = lambda: progress_ledger
    app.state.token_cache = token_cache
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
