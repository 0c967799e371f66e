"""Moderation service layer.

Business logic for:
- Aggregated comment view (report counts and tiers)
- Search and status filtering
- Comment deletion with report cascade
- Report intake and report status transitions
"""

import contextlib
import time
from collections.abc import Iterator
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from cassandra import OperationTimedOut, ReadTimeout, Unavailable
from cassandra.cluster import NoHostAvailable
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from src.core.redis import report_rate_key, view_cache_key, view_version_key

from .aggregator import aggregate
from .models import AggregatedComment, Report, ReportStatus, UserRef, create_report
from .query import StatusFilter, filter_comments
from .repository import ModerationStore


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ModerationError(Exception):
    """Base moderation error."""

    retryable = False

    def __init__(self, message: str, code: str = "moderation_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CommentNotFoundError(ModerationError):
    """Comment does not exist (nothing to delete or inspect)."""

    def __init__(self, comment_id: UUID | None = None):
        message = "Comment not found"
        if comment_id is not None:
            message = f"Comment {comment_id} not found"
        super().__init__(message, "comment_not_found")


class ReportNotFoundError(ModerationError):
    """Report does not exist."""

    def __init__(self, report_id: UUID | None = None):
        message = "Report not found"
        if report_id is not None:
            message = f"Report {report_id} not found"
        super().__init__(message, "report_not_found")


class CascadeFailureError(ModerationError):
    """Deleting a comment and its reports failed part way through."""

    def __init__(self, comment_id: UUID, stage: str):
        self.comment_id = comment_id
        self.stage = stage
        super().__init__(
            f"Deletion of comment {comment_id} failed during {stage}; "
            "check comment and report integrity",
            "cascade_failure",
        )


class StoreUnavailableError(ModerationError):
    """Transient backend failure; nothing was written."""

    retryable = True

    def __init__(self, message: str = "Moderation store unavailable"):
        super().__init__(message, "store_unavailable")


class RateLimitExceededError(ModerationError):
    """Reporter filed too many reports."""

    def __init__(self, message: str = "Report rate limit exceeded"):
        super().__init__(message, "rate_limit_exceeded")


# Failures raised before the coordinator accepted any write
TRANSIENT_STORE_ERRORS = (NoHostAvailable, Unavailable, OperationTimedOut, ReadTimeout)

_VIEW_ADAPTER = TypeAdapter(list[AggregatedComment])


@contextlib.contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """Re-raise transient driver failures as StoreUnavailableError."""
    try:
        yield
    except TRANSIENT_STORE_ERRORS as e:
        logger.warning("moderation_store_unavailable", operation=operation, error=str(e))
        raise StoreUnavailableError from e


# ==============================================================================
# Moderation Service
# ==============================================================================


class ModerationService:
    """Coordinates reads and moderator actions over comments and reports."""

    REPORTS_PER_HOUR = 5

    def __init__(
        self,
        store: ModerationStore,
        redis: "Redis | None" = None,
        atomic_delete: bool = True,
        cache_ttl_seconds: int = 30,
    ):
        """Initialize with the store and optional Redis view cache."""
        self.store = store
        self.redis = redis
        self.atomic_delete = atomic_delete
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache_bypass_until = 0.0

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def list_aggregated_comments(self) -> list[AggregatedComment]:
        """Every comment with its live reports, count and tier."""
        version = await self._view_version()
        if version is not None:
            cached = await self._get_cached_view(version)
            if cached is not None:
                return cached

        view = await self._compute_view()

        if version is not None:
            await self._cache_view(version, view)
        return view

    async def query_comments(
        self,
        search_term: str = "",
        status_filter: StatusFilter | str = StatusFilter.ALL,
    ) -> list[AggregatedComment]:
        """Aggregated view narrowed by search term and status filter."""
        view = await self.list_aggregated_comments()
        return filter_comments(view, search_term, status_filter)

    async def get_reports_for_comment(self, comment_id: UUID) -> list[Report]:
        """Reports filed against a comment, oldest first.

        Raises:
            CommentNotFoundError: If the comment does not exist
        """
        with translate_store_errors("get_reports_for_comment"):
            comment = await self.store.get_comment(comment_id)
            if comment is None:
                raise CommentNotFoundError(comment_id)
            reports = await self.store.get_reports_for_comment(comment_id)

        return sorted(reports, key=lambda r: (r.created_at, str(r.report_id)))

    async def _compute_view(self) -> list[AggregatedComment]:
        # Reports are read before comments: a comment deleted in between can
        # only leave dangling reports behind, which aggregation drops.
        with translate_store_errors("list_aggregated_comments"):
            reports = await self.store.fetch_reports()
            comments = await self.store.fetch_comments()

        view = aggregate(comments, reports)
        logger.debug(
            "moderation_view_computed",
            comments=len(view),
            reports=sum(item.report_count for item in view),
        )
        return view

    # ==========================================================================
    # Moderator actions
    # ==========================================================================

    async def delete_comment(self, comment_id: UUID) -> None:
        """Delete a comment together with every report that targets it.

        Not idempotent: deleting an id that no longer exists raises
        CommentNotFoundError.

        Raises:
            CommentNotFoundError: If the comment does not exist
            CascadeFailureError: If the store failed after writes began
            StoreUnavailableError: If the store was unreachable before any write
        """
        with translate_store_errors("delete_comment"):
            comment = await self.store.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError(comment_id)

        if self.atomic_delete:
            await self._delete_atomically(comment_id)
        else:
            await self._delete_reports_then_comment(comment_id)

        await self._invalidate_view()
        logger.info(
            "comment_deleted",
            comment_id=str(comment_id),
            atomic=self.atomic_delete,
        )

    async def _delete_atomically(self, comment_id: UUID) -> None:
        try:
            await self.store.delete_comment_with_reports(comment_id)
        except (NoHostAvailable, Unavailable) as e:
            raise StoreUnavailableError from e
        except Exception as e:
            # A timed out batch may still be applied by the batchlog
            await self._invalidate_view()
            logger.error(
                "comment_cascade_failed",
                comment_id=str(comment_id),
                stage="batch",
                error=str(e),
            )
            raise CascadeFailureError(comment_id, "batch") from e

    async def _delete_reports_then_comment(self, comment_id: UUID) -> None:
        # Reports go first so a crash leaves a comment with no reports,
        # never reports pointing at a missing comment.
        try:
            await self.store.delete_reports_for_comment(comment_id)
        except (NoHostAvailable, Unavailable) as e:
            raise StoreUnavailableError from e
        except Exception as e:
            await self._invalidate_view()
            logger.error(
                "comment_cascade_failed",
                comment_id=str(comment_id),
                stage="reports",
                error=str(e),
            )
            raise CascadeFailureError(comment_id, "reports") from e

        try:
            await self.store.delete_comment(comment_id)
        except Exception as e:
            # Reports are already gone; the view changed even though we fail
            await self._invalidate_view()
            logger.error(
                "comment_cascade_failed",
                comment_id=str(comment_id),
                stage="comment",
                error=str(e),
            )
            raise CascadeFailureError(comment_id, "comment") from e

    async def file_report(
        self,
        comment_id: UUID,
        reporter: UserRef,
        reason: str,
    ) -> Report:
        """Record a new pending report against an existing comment.

        Raises:
            CommentNotFoundError: If the comment does not exist
            RateLimitExceededError: If the reporter exceeded the hourly limit
        """
        with translate_store_errors("file_report"):
            if await self.store.get_comment(comment_id) is None:
                raise CommentNotFoundError(comment_id)

        await self._check_report_rate(reporter)

        report = create_report(comment_id=comment_id, reporter=reporter, reason=reason)
        with translate_store_errors("file_report"):
            await self.store.insert_report(report)

        await self._invalidate_view()
        logger.info(
            "report_filed",
            comment_id=str(comment_id),
            report_id=str(report.report_id),
        )
        return report

    async def set_report_status(
        self,
        comment_id: UUID,
        report_id: UUID,
        status: ReportStatus,
        moderator_notes: str | None = None,
    ) -> Report:
        """Move a report to a new status.

        Store failures are raised unchanged.

        Raises:
            ReportNotFoundError: If the report does not exist on that comment
        """
        report = await self.store.get_report(comment_id, report_id)
        if report is None:
            raise ReportNotFoundError(report_id)

        report.reviewed_at = await self.store.update_report_status(
            comment_id, report_id, status, moderator_notes
        )
        report.status = status
        report.moderator_notes = moderator_notes

        await self._invalidate_view()
        logger.info(
            "report_status_changed",
            report_id=str(report_id),
            status=status.value,
        )
        return report

    async def _check_report_rate(self, reporter: UserRef) -> None:
        if not self.redis or reporter.user_id is None:
            return

        key = report_rate_key(reporter.user_id)
        try:
            count = await self.redis.incr(key)
            if count == 1:
                await self.redis.expire(key, 3600)
        except RedisError as e:
            logger.warning("report_rate_check_skipped", error=str(e))
            return

        if count > self.REPORTS_PER_HOUR:
            raise RateLimitExceededError

    # ==========================================================================
    # View Cache
    # ==========================================================================

    async def _view_version(self) -> int | None:
        """Current view version, or None when the cache must not be used."""
        if not self.redis or time.monotonic() < self._cache_bypass_until:
            return None
        try:
            raw = await self.redis.get(view_version_key())
        except RedisError as e:
            logger.warning("moderation_view_cache_unavailable", error=str(e))
            return None
        return int(raw) if raw else 0

    async def _get_cached_view(self, version: int) -> list[AggregatedComment] | None:
        try:
            cached = await self.redis.get(view_cache_key(version))
        except RedisError as e:
            logger.warning("moderation_view_cache_unavailable", error=str(e))
            return None
        if not cached:
            return None
        try:
            return _VIEW_ADAPTER.validate_json(cached)
        except ValidationError as e:
            logger.warning(
                "moderation_view_cache_invalid",
                version=version,
                errors=e.error_count(),
            )
            return None

    async def _cache_view(self, version: int, view: list[AggregatedComment]) -> None:
        try:
            await self.redis.setex(
                view_cache_key(version),
                self.cache_ttl_seconds,
                _VIEW_ADAPTER.dump_json(view),
            )
        except RedisError as e:
            logger.warning("moderation_view_cache_write_failed", error=str(e))

    async def _invalidate_view(self) -> None:
        """Retire every cached view computed before this point.

        Bumping the version makes entries written by in-flight reads land
        under an obsolete key.
        """
        if not self.redis:
            return
        try:
            await self.redis.incr(view_version_key())
        except RedisError as e:
            # Keep this process off the cache until stale entries expire
            self._cache_bypass_until = time.monotonic() + self.cache_ttl_seconds
            logger.error("moderation_view_invalidation_failed", error=str(e))
