"""Tests for report aggregation and tier classification."""

from datetime import timedelta
from uuid import uuid4

import pytest

from src.moderation.aggregator import aggregate, classify_tier, group_reports
from src.moderation.models import Tier, UserRef, create_report

from ..conftest import BASE_TIME, FakeModerationStore


class TestClassifyTier:
    """Tests for the tier policy table."""

    @pytest.mark.parametrize(
        "report_count,expected",
        [
            (0, Tier.CLEAN),
            (1, Tier.REPORTED),
            (3, Tier.REPORTED),
            (4, Tier.CRITICAL),
            (50, Tier.CRITICAL),
        ],
    )
    def test_boundaries(self, report_count: int, expected: Tier) -> None:
        """Tiers switch at 1 and above 3."""
        assert classify_tier(report_count) is expected

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValueError):
            classify_tier(-1)


class TestAggregate:
    """Tests for building the aggregated view."""

    @pytest.mark.parametrize("count", [0, 1, 3, 4, 7])
    def test_report_count_matches_reports(
        self, store: FakeModerationStore, count: int
    ) -> None:
        """report_count equals the number of reports targeting the comment."""
        comment = store.add_comment("hello")
        store.add_reports(comment.comment_id, count)

        [item] = aggregate(store.comments.values(), store.reports.values())

        assert item.report_count == count
        assert len(item.reports) == count
        assert item.tier is classify_tier(count)

    def test_fixture_tiers(self, abc_store: FakeModerationStore) -> None:
        """A is clean, B reported, C critical."""
        view = aggregate(
            [abc_store.comment_a, abc_store.comment_b, abc_store.comment_c],
            abc_store.reports.values(),
        )

        assert [(item.comment_id, item.tier) for item in view] == [
            (abc_store.comment_a.comment_id, Tier.CLEAN),
            (abc_store.comment_b.comment_id, Tier.REPORTED),
            (abc_store.comment_c.comment_id, Tier.CRITICAL),
        ]

    def test_comment_without_reports_is_kept(
        self, store: FakeModerationStore
    ) -> None:
        """Unreported comments appear with an empty report list."""
        comment = store.add_comment("nobody minds this")

        [item] = aggregate([comment], [])

        assert item.comment is comment
        assert item.reports == []
        assert item.report_count == 0
        assert item.tier is Tier.CLEAN

    def test_preserves_comment_order(self, store: FakeModerationStore) -> None:
        first = store.add_comment("first", minutes=0)
        second = store.add_comment("second", minutes=5)

        view = aggregate([second, first], [])

        assert [item.comment for item in view] == [second, first]

    def test_dangling_reports_are_dropped(self, store: FakeModerationStore) -> None:
        """Reports against a missing comment never reach the view."""
        comment = store.add_comment("still here")
        store.add_reports(comment.comment_id, 1)
        orphan = create_report(uuid4(), UserRef(username="ghost"), "spam")

        [item] = aggregate([comment], [*store.reports.values(), orphan])

        assert item.report_count == 1
        assert orphan not in item.reports

    def test_reports_ordered_oldest_first(self, store: FakeModerationStore) -> None:
        comment = store.add_comment("contested")
        reports = store.add_reports(comment.comment_id, 3)
        reports[0].created_at = BASE_TIME + timedelta(days=2)

        [item] = aggregate([comment], reports)

        assert item.reports == [reports[1], reports[2], reports[0]]


class TestGroupReports:
    """Tests for grouping reports by target comment."""

    def test_counts_dangling(self, store: FakeModerationStore) -> None:
        comment = store.add_comment("x")
        store.add_reports(comment.comment_id, 2)
        orphans = [create_report(uuid4(), UserRef(), "abuse") for _ in range(3)]

        grouped, dangling = group_reports(
            [*store.reports.values(), *orphans], {comment.comment_id}
        )

        assert dangling == 3
        assert len(grouped[comment.comment_id]) == 2
