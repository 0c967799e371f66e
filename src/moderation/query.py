"""Search and status filtering over the aggregated view."""

from collections.abc import Sequence
from enum import Enum

from .models import AggregatedComment


class StatusFilter(str, Enum):
    """Status filter offered by the moderation dashboard."""

    ALL = "all"
    REPORTED = "reported"
    CLEAN = "clean"


def matches_search(item: AggregatedComment, search_term: str) -> bool:
    """Case-insensitive substring match on body, username or email.

    The anonymous placeholder is display-only and is never searched.
    """
    if not search_term:
        return True

    needle = search_term.casefold()
    author = item.comment.author
    identifier = author.username or author.email or ""
    return needle in item.comment.body.casefold() or needle in identifier.casefold()


def matches_status(item: AggregatedComment, status_filter: StatusFilter) -> bool:
    if status_filter is StatusFilter.REPORTED:
        return item.report_count > 0
    if status_filter is StatusFilter.CLEAN:
        return item.report_count == 0
    return True


def filter_comments(
    view: Sequence[AggregatedComment],
    search_term: str = "",
    status_filter: StatusFilter | str = StatusFilter.ALL,
) -> list[AggregatedComment]:
    """Return the entries passing both filters, in their original order.

    Raises:
        ValueError: If ``status_filter`` is not a known filter value
    """
    status_filter = StatusFilter(status_filter)
    search_term = search_term or ""
    return [
        item
        for item in view
        if matches_search(item, search_term) and matches_status(item, status_filter)
    ]
