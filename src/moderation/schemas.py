"""Pydantic schemas for the moderation dashboard API.

Field names at the HTTP boundary follow the dashboard's JSON shape
(``comment``, ``createdAt``, ``moderatorNotes``, ``User``, ``reportCount``);
the Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import ReportStatus, Tier


# ==============================================================================
# Request Schemas
# ==============================================================================


class ReporterIn(BaseModel):
    """Identity of the user filing a report."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: UUID | None = Field(None, alias="id")
    username: str | None = Field(None, max_length=150)
    email: str | None = Field(None, max_length=254)


class CreateReportRequest(BaseModel):
    """Request to report a comment."""

    model_config = ConfigDict(populate_by_name=True)

    reason: str = Field(..., min_length=1, max_length=1000)
    reporter: ReporterIn = Field(default_factory=ReporterIn, alias="User")

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        """Strip whitespace and validate reason."""
        v = v.strip()
        if not v:
            msg = "Reason cannot be empty"
            raise ValueError(msg)
        return v


class UpdateReportStatusRequest(BaseModel):
    """Request to move a report to a new status."""

    model_config = ConfigDict(populate_by_name=True)

    status: ReportStatus
    moderator_notes: str | None = Field(
        None, max_length=1000, alias="moderatorNotes"
    )


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """Author or reporter identity as shown on the dashboard."""

    username: str | None = None
    email: str | None = None


class ReportResponse(BaseModel):
    """Response for a comment report."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    comment: UUID
    reason: str
    status: ReportStatus
    moderator_notes: str | None = Field(None, alias="moderatorNotes")
    created_at: datetime = Field(..., alias="createdAt")
    user: UserResponse = Field(..., alias="User")

    @classmethod
    def from_report(cls, report: Any) -> "ReportResponse":
        """Create response from Report entity."""
        return cls(
            id=report.report_id,
            comment=report.comment_id,
            reason=report.reason,
            status=report.status,
            moderator_notes=report.moderator_notes,
            created_at=report.created_at,
            user=UserResponse(
                username=report.reporter.username,
                email=report.reporter.email,
            ),
        )


class AggregatedCommentResponse(BaseModel):
    """Comment row of the moderation dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    comment: str
    created_at: datetime = Field(..., alias="createdAt")
    user: UserResponse = Field(..., alias="User")
    report_count: int = Field(..., alias="reportCount")
    tier: Tier
    reports: list[ReportResponse] = Field(default_factory=list)

    @classmethod
    def from_aggregated(cls, item: Any) -> "AggregatedCommentResponse":
        """Create response from AggregatedComment entity."""
        return cls(
            id=item.comment.comment_id,
            comment=item.comment.body,
            created_at=item.comment.created_at,
            user=UserResponse(
                username=item.comment.author.username,
                email=item.comment.author.email,
            ),
            report_count=item.report_count,
            tier=item.tier,
            reports=[ReportResponse.from_report(r) for r in item.reports],
        )
