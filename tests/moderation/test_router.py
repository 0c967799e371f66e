"""Tests for the moderation HTTP endpoints."""

from uuid import uuid4

from cassandra import Unavailable, WriteTimeout, WriteType
from fastapi.testclient import TestClient


BASE = "/api/comment-reports"


class TestListComments:
    """Tests for GET /comments-with-reports."""

    def test_dashboard_json_shape(self, client: TestClient, abc_store) -> None:
        response = client.get(f"{BASE}/comments-with-reports")

        assert response.status_code == 200
        data = response.json()
        assert [item["reportCount"] for item in data] == [0, 2, 5]
        assert [item["tier"] for item in data] == ["clean", "reported", "critical"]

        row = data[1]
        assert row["id"] == str(abc_store.comment_b.comment_id)
        assert row["comment"] == "Meh, the box was damaged"
        assert row["User"] == {"username": None, "email": "bob@example.com"}
        assert "createdAt" in row
        assert set(row["reports"][0]) >= {
            "id",
            "comment",
            "reason",
            "status",
            "moderatorNotes",
            "createdAt",
            "User",
        }

    def test_status_filter(self, client: TestClient, abc_store) -> None:
        response = client.get(
            f"{BASE}/comments-with-reports", params={"status": "clean"}
        )

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [
            str(abc_store.comment_a.comment_id)
        ]

    def test_search_matches_author_email(self, client: TestClient, abc_store) -> None:
        response = client.get(
            f"{BASE}/comments-with-reports", params={"search": "BOB@"}
        )

        assert [item["id"] for item in response.json()] == [
            str(abc_store.comment_b.comment_id)
        ]

    def test_invalid_status_rejected(self, client: TestClient) -> None:
        response = client.get(
            f"{BASE}/comments-with-reports", params={"status": "flagged"}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"


class TestCommentReports:
    """Tests for GET /comment/{id}/reports."""

    def test_lists_reports(self, client: TestClient, abc_store) -> None:
        response = client.get(f"{BASE}/comment/{abc_store.comment_c.comment_id}/reports")

        assert response.status_code == 200
        assert len(response.json()) == 5

    def test_unknown_comment(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/comment/{uuid4()}/reports")

        assert response.status_code == 404
        assert response.json()["code"] == "comment_not_found"


class TestDeleteComment:
    """Tests for DELETE /comment/{id}."""

    def test_delete_then_not_found(self, client: TestClient, abc_store) -> None:
        url = f"{BASE}/comment/{abc_store.comment_c.comment_id}"

        first = client.delete(url)
        second = client.delete(url)

        assert first.status_code == 204
        assert second.status_code == 404
        assert second.json()["code"] == "comment_not_found"

        listing = client.get(f"{BASE}/comments-with-reports").json()
        assert [item["reportCount"] for item in listing] == [0, 2]

    def test_cascade_failure_is_distinct_from_not_found(
        self, client: TestClient, abc_store
    ) -> None:
        abc_store.failures["delete_comment_with_reports"] = WriteTimeout(
            "timed out", write_type=WriteType.SIMPLE
        )

        response = client.delete(f"{BASE}/comment/{abc_store.comment_c.comment_id}")

        assert response.status_code == 500
        assert response.json()["code"] == "cascade_failure"

    def test_store_unavailable_is_retryable(
        self, client: TestClient, abc_store
    ) -> None:
        abc_store.failures["delete_comment_with_reports"] = Unavailable("replicas")

        response = client.delete(f"{BASE}/comment/{abc_store.comment_c.comment_id}")

        assert response.status_code == 503
        assert response.json()["code"] == "store_unavailable"
        assert response.headers["Retry-After"] == "1"

    def test_malformed_id(self, client: TestClient) -> None:
        response = client.delete(f"{BASE}/comment/not-a-uuid")

        assert response.status_code == 422


class TestReportEndpoints:
    """Tests for report intake and status changes."""

    def test_file_report(self, client: TestClient, abc_store) -> None:
        response = client.post(
            f"{BASE}/comment/{abc_store.comment_a.comment_id}/reports",
            json={"reason": "  rude  ", "User": {"id": str(uuid4()), "username": "carol"}},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["reason"] == "rude"
        assert data["User"]["username"] == "carol"

        listing = client.get(f"{BASE}/comments-with-reports").json()
        assert listing[0]["reportCount"] == 1
        assert listing[0]["tier"] == "reported"

    def test_blank_reason_rejected(self, client: TestClient, abc_store) -> None:
        response = client.post(
            f"{BASE}/comment/{abc_store.comment_a.comment_id}/reports",
            json={"reason": "   "},
        )

        assert response.status_code == 422

    def test_resolve_report(self, client: TestClient, abc_store) -> None:
        report = next(
            r
            for r in abc_store.reports.values()
            if r.comment_id == abc_store.comment_b.comment_id
        )

        response = client.patch(
            f"{BASE}/comment/{report.comment_id}/reports/{report.report_id}",
            json={"status": "resolved", "moderatorNotes": "author warned"},
            headers={"X-Moderator-ID": "mod-7"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "resolved"
        assert response.json()["moderatorNotes"] == "author warned"

    def test_unknown_report(self, client: TestClient, abc_store) -> None:
        response = client.patch(
            f"{BASE}/comment/{abc_store.comment_b.comment_id}/reports/{uuid4()}",
            json={"status": "dismissed"},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "report_not_found"
