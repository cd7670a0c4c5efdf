"""
Unit tests for dashboard aggregations and the career timeline.
"""

from datetime import datetime

from analytics import (
    assignment_counts,
    average_assignment_percentage,
    average_certifications_per_employee,
    build_timeline,
    dashboard_summary,
    parse_date,
    project_status_summary,
)


class TestDashboard:
    """Organisation-wide figures."""

    def test_average_assignment_counts_null_as_zero(self):
        users = [{"percentage": 50}, {"percentage": None}, {"percentage": 25}]
        assert average_assignment_percentage(users) == 25.0

    def test_average_assignment_rounds_half_up(self):
        assert average_assignment_percentage([{"percentage": 12}, {"percentage": 12.5}]) == 12.3

    def test_average_assignment_without_users(self):
        assert average_assignment_percentage([]) == 0

    def test_certifications_per_employee(self):
        assert average_certifications_per_employee(5, 3) == 1.67
        assert average_certifications_per_employee(4, 0) == 0

    def test_project_status(self):
        summary = project_status_summary([
            {"status": "Completed"},
            {"status": "Completed"},
            {"status": "In Progress"},
            {"status": "Cancelled"},
        ])
        assert summary["counts"] == {"Not Started": 0, "In Progress": 1, "On Hold": 0, "Completed": 2}
        assert summary["total"] == 4
        assert summary["completionPercentage"] == 50

    def test_project_completion_rounds(self):
        summary = project_status_summary([{"status": "Completed"}, {"status": "On Hold"},
                                          {"status": "Not Started"}])
        assert summary["completionPercentage"] == 33
        assert project_status_summary([])["completionPercentage"] == 0

    def test_assignment_counts_only_active_projects(self):
        projects = [{"projectID": 1, "status": "In Progress"}, {"projectID": 2, "status": "Completed"}]
        user_roles = [
            {"user_id": "a", "project_id": 1},
            {"user_id": "a", "project_id": "1"},
            {"user_id": "b", "project_id": 2},
            {"user_id": "c", "project_id": None},
        ]
        assert assignment_counts(projects, user_roles, 4) == {"assigned": 1, "unassigned": 3}

    def test_summary_keys(self):
        summary = dashboard_summary(
            [{"user_id": "a", "percentage": 100}, {"user_id": "b", "percentage": 0}],
            [{"projectID": 1, "status": "In Progress"}],
            [{"user_id": "a", "project_id": 1}],
            [{"id": 1}, {"id": 2}, {"id": 3}],
        )
        assert summary == {
            "avgAssignmentPercentage": 50.0,
            "avgCertificationsPerEmployee": 1.5,
            "projectStatus": {
                "counts": {"Not Started": 0, "In Progress": 1, "On Hold": 0, "Completed": 0},
                "total": 1,
                "completionPercentage": 0,
            },
            "assignments": {"assigned": 1, "unassigned": 1},
        }


class TestTimeline:
    """Projects and approved certifications, newest first."""

    def test_order_and_filtering(self):
        projects = [
            {"id": "p1", "startDate": "2023-01-01", "date": "Jan 2023"},
            {"id": "p2", "startDate": "2024-05-01T00:00:00Z", "date": "May 2024"},
        ]
        certifications = [
            {"id": "c1", "status": "approved", "completedDate": "2023-06-01", "date": "Jun 2023"},
            {"id": "c2", "status": "pending", "completedDate": "2025-01-01"},
            {"id": "c3", "status": "approved"},
        ]

        items = build_timeline(projects, certifications)

        assert [i["id"] for i in items] == ["p2", "c1", "p1", "c3"]
        assert [i["type"] for i in items] == ["project", "certification", "project", "certification"]
        assert items[2]["displayDate"] == "Jan 2023"
        assert items[3]["displayDate"] is None

    def test_empty(self):
        assert build_timeline([], []) == []

    def test_parse_date(self):
        assert parse_date("2024-05-01T02:00:00+02:00") == datetime(2024, 5, 1, 0, 0)
        assert parse_date("2024-05-01") == datetime(2024, 5, 1)
        assert parse_date("not a date") is None
        assert parse_date(None) is None
