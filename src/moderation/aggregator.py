"""Report aggregation and tier classification.

Pure functions over a snapshot of comments and reports. Nothing here is
cached: callers recompute the view whenever the report set may have changed.
"""

from collections import defaultdict
from collections.abc import Iterable
from uuid import UUID

import structlog

from .models import AggregatedComment, Comment, Report, Tier


logger = structlog.get_logger(__name__)


# Tier policy: 0 -> clean, 1..3 -> reported, above 3 -> critical
CRITICAL_REPORT_THRESHOLD = 3


def classify_tier(report_count: int) -> Tier:
    """Classify a comment by its report count."""
    if report_count < 0:
        msg = f"report_count must be non-negative, got {report_count}"
        raise ValueError(msg)
    if report_count == 0:
        return Tier.CLEAN
    if report_count <= CRITICAL_REPORT_THRESHOLD:
        return Tier.REPORTED
    return Tier.CRITICAL


def group_reports(
    reports: Iterable[Report], comment_ids: set[UUID]
) -> tuple[dict[UUID, list[Report]], int]:
    """Group reports by target comment, oldest first.

    Reports whose target is not in ``comment_ids`` are dropped.

    Returns:
        Mapping of comment id to its reports, and the number of dropped reports
    """
    grouped: dict[UUID, list[Report]] = defaultdict(list)
    dangling = 0
    for report in reports:
        if report.comment_id not in comment_ids:
            dangling += 1
            continue
        grouped[report.comment_id].append(report)

    for bucket in grouped.values():
        bucket.sort(key=lambda r: (r.created_at, str(r.report_id)))

    return grouped, dangling


def aggregate(
    comments: Iterable[Comment], reports: Iterable[Report]
) -> list[AggregatedComment]:
    """Build the aggregated view, one entry per comment in input order.

    Comments without reports are kept with an empty report list.
    """
    comments = list(comments)
    grouped, dangling = group_reports(reports, {c.comment_id for c in comments})

    if dangling:
        logger.debug("dangling_reports_skipped", count=dangling)

    view = []
    for comment in comments:
        comment_reports = grouped.get(comment.comment_id, [])
        view.append(
            AggregatedComment(
                comment=comment,
                tier=classify_tier(len(comment_reports)),
                reports=comment_reports,
            )
        )
    return view
