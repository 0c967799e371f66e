"""Cassandra access for comments and reports.

Thin wrapper around prepared statements. Driver exceptions propagate
unchanged; ModerationService decides what they mean for the caller.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from cassandra.query import BatchStatement, BatchType

from .models import Comment, Report, ReportStatus


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ModerationStore:
    """Reads and writes the comment and report tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements (keyspace is from settings, not user input)."""
        # Comments
        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
            WHERE comment_id = ?
        """)

        self._get_all_comments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
        """)

        self._delete_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments
            WHERE comment_id = ?
        """)

        # Reports
        self._insert_report = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comment_reports
            (comment_id, report_id, reporter_id, reporter_username, reporter_email,
             reason, status, moderator_notes, created_at, reviewed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_report = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_reports
            WHERE comment_id = ? AND report_id = ?
        """)

        self._get_reports_for_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_reports
            WHERE comment_id = ?
        """)

        self._get_all_reports = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comment_reports
        """)

        self._update_report_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.comment_reports
            SET status = ?, moderator_notes = ?, reviewed_at = ?
            WHERE comment_id = ? AND report_id = ?
        """)

        # Partition delete: every report of one comment
        self._delete_reports_for_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comment_reports
            WHERE comment_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def fetch_comments(self) -> list[Comment]:
        """All comments, newest first."""
        rows = await self.session.aexecute(self._get_all_comments)
        comments = [Comment.from_row(row) for row in rows]
        comments.sort(key=lambda c: (c.created_at, str(c.comment_id)), reverse=True)
        return comments

    async def fetch_reports(self) -> list[Report]:
        """All reports, in no particular order."""
        rows = await self.session.aexecute(self._get_all_reports)
        return [Report.from_row(row) for row in rows]

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        result = await self.session.aexecute(self._get_comment, [comment_id])
        row = result[0] if result else None
        return Comment.from_row(row) if row else None

    async def get_reports_for_comment(self, comment_id: UUID) -> list[Report]:
        rows = await self.session.aexecute(self._get_reports_for_comment, [comment_id])
        return [Report.from_row(row) for row in rows]

    async def get_report(self, comment_id: UUID, report_id: UUID) -> Report | None:
        result = await self.session.aexecute(self._get_report, [comment_id, report_id])
        row = result[0] if result else None
        return Report.from_row(row) if row else None

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def insert_report(self, report: Report) -> None:
        await self.session.aexecute(
            self._insert_report,
            [
                report.comment_id,
                report.report_id,
                report.reporter.user_id,
                report.reporter.username,
                report.reporter.email,
                report.reason,
                report.status.value,
                report.moderator_notes,
                report.created_at,
                report.reviewed_at,
            ],
        )

    async def update_report_status(
        self,
        comment_id: UUID,
        report_id: UUID,
        status: ReportStatus,
        moderator_notes: str | None,
    ) -> datetime:
        """Set a report's status and notes. Returns the review timestamp."""
        reviewed_at = datetime.now(UTC)
        await self.session.aexecute(
            self._update_report_status,
            [status.value, moderator_notes, reviewed_at, comment_id, report_id],
        )
        return reviewed_at

    async def delete_comment_with_reports(self, comment_id: UUID) -> None:
        """Delete a comment and all its reports in one LOGGED batch."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        batch.add(self._delete_reports_for_comment, [comment_id])
        batch.add(self._delete_comment, [comment_id])
        await self.session.aexecute(batch)

    async def delete_reports_for_comment(self, comment_id: UUID) -> None:
        await self.session.aexecute(self._delete_reports_for_comment, [comment_id])

    async def delete_comment(self, comment_id: UUID) -> None:
        await self.session.aexecute(self._delete_comment, [comment_id])
