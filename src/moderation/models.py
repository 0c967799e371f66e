"""Database models for comment moderation.

Cassandra table definitions for:
- Comments: one row per comment, author identity denormalized
- Comment reports: user complaints, partitioned by the comment they target

Reports reference their comment by id only. The per-comment report list
and report count exist solely in the derived AggregatedComment view, which
is recomputed from the two tables on every read.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


ANONYMOUS_DISPLAY_NAME = "Anonymous"


class ReportStatus(str, Enum):
    """Report moderation status."""

    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class Tier(str, Enum):
    """Severity tier of a comment, derived from its report count."""

    CLEAN = "clean"
    REPORTED = "reported"
    CRITICAL = "critical"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    comment_id UUID PRIMARY KEY,
    author_id UUID,
    author_username TEXT,
    author_email TEXT,
    body TEXT,
    created_at TIMESTAMP
)
"""

# Partition by comment_id so one comment's reports are deleted together
REPORT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comment_reports (
    comment_id UUID,
    report_id UUID,
    reporter_id UUID,
    reporter_username TEXT,
    reporter_email TEXT,
    reason TEXT,
    status TEXT,
    moderator_notes TEXT,
    created_at TIMESTAMP,
    reviewed_at TIMESTAMP,
    PRIMARY KEY ((comment_id), report_id)
)
"""

MODERATION_TABLES_CQL = [
    COMMENT_TABLE_CQL,
    REPORT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class UserRef:
    """Identity of a comment author or reporter."""

    user_id: UUID | None = None
    username: str | None = None
    email: str | None = None

    @property
    def display_name(self) -> str:
        """Username, falling back to email, falling back to a placeholder."""
        return self.username or self.email or ANONYMOUS_DISPLAY_NAME


@dataclass
class Comment:
    """Comment under moderation."""

    comment_id: UUID
    author: UserRef
    body: str
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            author=UserRef(
                user_id=row.author_id,
                username=row.author_username,
                email=row.author_email,
            ),
            body=row.body or "",
            created_at=row.created_at,
        )


@dataclass
class Report:
    """Complaint filed by a user against a comment."""

    report_id: UUID
    comment_id: UUID
    reporter: UserRef
    reason: str
    status: ReportStatus
    moderator_notes: str | None
    created_at: datetime
    reviewed_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Report":
        """Create Report from Cassandra row."""
        return cls(
            report_id=row.report_id,
            comment_id=row.comment_id,
            reporter=UserRef(
                user_id=row.reporter_id,
                username=row.reporter_username,
                email=row.reporter_email,
            ),
            reason=row.reason or "",
            status=ReportStatus(row.status or ReportStatus.PENDING.value),
            moderator_notes=row.moderator_notes,
            created_at=row.created_at,
            reviewed_at=row.reviewed_at,
        )


@dataclass
class AggregatedComment:
    """Comment with its live reports, report count and tier.

    Derived from the comment and report tables; never persisted.
    """

    comment: Comment
    tier: Tier
    reports: list[Report] = field(default_factory=list)

    @property
    def comment_id(self) -> UUID:
        return self.comment.comment_id

    @property
    def report_count(self) -> int:
        return len(self.reports)


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(author: UserRef, body: str) -> Comment:
    """Create a new comment with default values."""
    return Comment(
        comment_id=uuid4(),
        author=author,
        body=body,
        created_at=datetime.now(UTC),
    )


def create_report(comment_id: UUID, reporter: UserRef, reason: str) -> Report:
    """Create a new pending report."""
    return Report(
        report_id=uuid4(),
        comment_id=comment_id,
        reporter=reporter,
        reason=reason,
        status=ReportStatus.PENDING,
        moderator_notes=None,
        created_at=datetime.now(UTC),
    )
