"""Comment and report moderation API endpoints.

Provides routes for:
- Aggregated comment list with search and status filters
- Reports of a single comment
- Comment deletion (cascades to its reports)
- Report intake and report status changes
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from .dependencies import ModerationServiceDep, handle_moderation_error
from .models import UserRef
from .query import StatusFilter
from .schemas import (
    AggregatedCommentResponse,
    CreateReportRequest,
    ReportResponse,
    UpdateReportStatusRequest,
)
from .service import ModerationError


router = APIRouter(prefix="/api/comment-reports", tags=["moderation"])


@router.get(
    "/comments-with-reports",
    response_model=list[AggregatedCommentResponse],
    summary="List comments with reports",
)
async def list_comments_with_reports(
    moderation_service: ModerationServiceDep,
    search: str = Query("", max_length=200, description="Body or author search"),
    status_filter: StatusFilter = Query(
        StatusFilter.ALL, alias="status", description="all, reported or clean"
    ),
) -> list[AggregatedCommentResponse]:
    """Every comment with its report count, tier and reports.

    Without query parameters this is the full aggregated view.
    """
    try:
        if search or status_filter is not StatusFilter.ALL:
            view = await moderation_service.query_comments(search, status_filter)
        else:
            view = await moderation_service.list_aggregated_comments()
    except ModerationError as e:
        raise handle_moderation_error(e) from e

    return [AggregatedCommentResponse.from_aggregated(item) for item in view]


@router.get(
    "/comment/{comment_id}/reports",
    response_model=list[ReportResponse],
    summary="List reports for a comment",
)
async def get_comment_reports(
    comment_id: UUID,
    moderation_service: ModerationServiceDep,
) -> list[ReportResponse]:
    """Reports filed against a comment, oldest first."""
    try:
        reports = await moderation_service.get_reports_for_comment(comment_id)
    except ModerationError as e:
        raise handle_moderation_error(e) from e

    return [ReportResponse.from_report(r) for r in reports]


@router.delete(
    "/comment/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    moderation_service: ModerationServiceDep,
) -> None:
    """Delete a comment and every report that targets it."""
    try:
        await moderation_service.delete_comment(comment_id)
    except ModerationError as e:
        raise handle_moderation_error(e) from e


@router.post(
    "/comment/{comment_id}/reports",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report comment",
)
async def report_comment(
    comment_id: UUID,
    data: CreateReportRequest,
    moderation_service: ModerationServiceDep,
) -> ReportResponse:
    """File a report against a comment.

    Limited to 5 reports per hour per reporter.
    """
    reporter = UserRef(
        user_id=data.reporter.user_id,
        username=data.reporter.username,
        email=data.reporter.email,
    )
    try:
        report = await moderation_service.file_report(
            comment_id=comment_id,
            reporter=reporter,
            reason=data.reason,
        )
    except ModerationError as e:
        raise handle_moderation_error(e) from e

    return ReportResponse.from_report(report)


@router.patch(
    "/comment/{comment_id}/reports/{report_id}",
    response_model=ReportResponse,
    summary="Change report status",
)
async def update_report_status(
    comment_id: UUID,
    report_id: UUID,
    data: UpdateReportStatusRequest,
    moderation_service: ModerationServiceDep,
) -> ReportResponse:
    """Resolve, dismiss or reopen a report."""
    try:
        report = await moderation_service.set_report_status(
            comment_id=comment_id,
            report_id=report_id,
            status=data.status,
            moderator_notes=data.moderator_notes,
        )
    except ModerationError as e:
        raise handle_moderation_error(e) from e

    return ReportResponse.from_report(report)
