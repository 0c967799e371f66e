"""Comment moderation module.

Provides the moderation dashboard backend with:
- Report aggregation and severity tiers
- Search and status filtering
- Comment deletion with report cascade
- Report intake and status transitions

Note: Router is not exported here to avoid circular imports.
Import directly from src.moderation.router when needed.
"""

from .aggregator import aggregate, classify_tier
from .models import (
    MODERATION_TABLES_CQL,
    AggregatedComment,
    Comment,
    Report,
    ReportStatus,
    Tier,
    UserRef,
)
from .query import StatusFilter, filter_comments
from .repository import ModerationStore
from .service import (
    CascadeFailureError,
    CommentNotFoundError,
    ModerationError,
    ModerationService,
    ReportNotFoundError,
    StoreUnavailableError,
)


__all__ = [
    "MODERATION_TABLES_CQL",
    "AggregatedComment",
    "CascadeFailureError",
    "Comment",
    "CommentNotFoundError",
    "ModerationError",
    "ModerationService",
    "ModerationStore",
    "Report",
    "ReportNotFoundError",
    "ReportStatus",
    "StatusFilter",
    "StoreUnavailableError",
    "Tier",
    "UserRef",
    "aggregate",
    "classify_tier",
    "filter_comments",
]
