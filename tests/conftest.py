"""Shared fixtures for the moderation test suite."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import UTC, datetime, timedelta  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.moderation.models import (  # noqa: E402
    Comment,
    Report,
    ReportStatus,
    UserRef,
    create_comment,
)
from src.moderation.service import ModerationService  # noqa: E402


BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class FakeModerationStore:
    """In-memory stand-in for ModerationStore.

    ``failures`` maps a method name to the exception it should raise.
    """

    def __init__(self) -> None:
        self.comments: dict[UUID, Comment] = {}
        self.reports: dict[UUID, Report] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    async def fetch_comments(self) -> list[Comment]:
        self._enter("fetch_comments")
        return sorted(
            self.comments.values(),
            key=lambda c: (c.created_at, str(c.comment_id)),
            reverse=True,
        )

    async def fetch_reports(self) -> list[Report]:
        self._enter("fetch_reports")
        return list(self.reports.values())

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        self._enter("get_comment")
        return self.comments.get(comment_id)

    async def get_reports_for_comment(self, comment_id: UUID) -> list[Report]:
        self._enter("get_reports_for_comment")
        return [r for r in self.reports.values() if r.comment_id == comment_id]

    async def get_report(self, comment_id: UUID, report_id: UUID) -> Report | None:
        self._enter("get_report")
        report = self.reports.get(report_id)
        if report is None or report.comment_id != comment_id:
            return None
        return report

    async def insert_report(self, report: Report) -> None:
        self._enter("insert_report")
        self.reports[report.report_id] = report

    async def update_report_status(
        self,
        comment_id: UUID,
        report_id: UUID,
        status: ReportStatus,
        moderator_notes: str | None,
    ) -> datetime:
        self._enter("update_report_status")
        reviewed_at = BASE_TIME + timedelta(days=1)
        report = self.reports[report_id]
        report.status = status
        report.moderator_notes = moderator_notes
        report.reviewed_at = reviewed_at
        return reviewed_at

    async def delete_comment_with_reports(self, comment_id: UUID) -> None:
        self._enter("delete_comment_with_reports")
        self._drop_reports(comment_id)
        self.comments.pop(comment_id, None)

    async def delete_reports_for_comment(self, comment_id: UUID) -> None:
        self._enter("delete_reports_for_comment")
        self._drop_reports(comment_id)

    async def delete_comment(self, comment_id: UUID) -> None:
        self._enter("delete_comment")
        self.comments.pop(comment_id, None)

    def _drop_reports(self, comment_id: UUID) -> None:
        for report_id in [
            r.report_id for r in self.reports.values() if r.comment_id == comment_id
        ]:
            del self.reports[report_id]

    # Seeding helpers

    def add_comment(
        self, body: str, author: UserRef | None = None, minutes: int = 0
    ) -> Comment:
        comment = create_comment(author=author or UserRef(), body=body)
        comment.created_at = BASE_TIME + timedelta(minutes=minutes)
        self.comments[comment.comment_id] = comment
        return comment

    def add_reports(
        self, comment_id: UUID, count: int, reason: str = "spam"
    ) -> list[Report]:
        added = []
        for i in range(count):
            report = Report(
                report_id=uuid4(),
                comment_id=comment_id,
                reporter=UserRef(user_id=uuid4(), username=f"reporter{i}"),
                reason=reason,
                status=ReportStatus.PENDING,
                moderator_notes=None,
                created_at=BASE_TIME + timedelta(hours=i + 1),
            )
            self.reports[report.report_id] = report
            added.append(report)
        return added


@pytest.fixture
def store() -> FakeModerationStore:
    """Empty in-memory store."""
    return FakeModerationStore()


@pytest.fixture
def abc_store(store: FakeModerationStore) -> FakeModerationStore:
    """Comment A (0 reports), B (2 reports), C (5 reports).

    A is the newest, so the newest-first view reads A, B, C.
    """
    store.comment_a = store.add_comment(
        "Lovely product, fast delivery",
        UserRef(user_id=uuid4(), username="alice"),
        minutes=2,
    )
    store.comment_b = store.add_comment(
        "Meh, the box was damaged",
        UserRef(user_id=uuid4(), email="bob@example.com"),
        minutes=1,
    )
    store.comment_c = store.add_comment(
        "BUY CHEAP FOLLOWERS NOW",
        UserRef(user_id=uuid4()),
        minutes=0,
    )
    store.add_reports(store.comment_b.comment_id, 2)
    store.add_reports(store.comment_c.comment_id, 5)
    return store


@pytest.fixture
def service(abc_store: FakeModerationStore) -> ModerationService:
    """ModerationService over the A/B/C fixture, without Redis."""
    return ModerationService(store=abc_store)


@pytest.fixture
def client(service: ModerationService) -> TestClient:
    """Test client with the moderation service injected."""
    from src.main import app
    from src.moderation.dependencies import get_moderation_service

    app.dependency_overrides[get_moderation_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()
