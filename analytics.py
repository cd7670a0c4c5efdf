"""
analytics.py — PathExplorer Matching Service
Dashboard aggregations over records read from the hosted backend:
assignment rate, certifications per employee, project status, bench size,
and the per-employee career timeline.
"""

from datetime import datetime, timezone

from config import (
    PROJECT_STATUSES, ACTIVE_PROJECT_STATUS, COMPLETED_PROJECT_STATUS, APPROVED_CERT_STATUS,
)
from scoring import round_half_up


# ─────────────────────────────────────────────────────────────────────────────
# MAIN ENTRY POINT
# ─────────────────────────────────────────────────────────────────────────────
def dashboard_summary(users: list, projects: list, user_roles: list,
                      user_certifications: list) -> dict:
    """
    Args:
        users: User rows ({"user_id", "percentage"})
        projects: Project rows ({"projectID", "status"})
        user_roles: UserRole rows ({"user_id", "project_id"})
        user_certifications: UserCertifications rows (only counted)
    """
    users = users or []
    projects = projects or []
    total_certs = len(user_certifications or [])
    return {
        "avgAssignmentPercentage":      average_assignment_percentage(users),
        "avgCertificationsPerEmployee": average_certifications_per_employee(total_certs, len(users)),
        "projectStatus":                project_status_summary(projects),
        "assignments":                  assignment_counts(projects, user_roles or [], len(users)),
    }


def average_assignment_percentage(users: list) -> float:
    """Mean of User.percentage, null counted as 0, one decimal."""
    if not users:
        return 0
    total = sum((u.get("percentage") or 0) for u in users)
    return round_half_up(total / len(users), 1)


def average_certifications_per_employee(total_certifications: int, total_users: int) -> float:
    if not total_users:
        return 0
    return round_half_up(total_certifications / total_users, 2)


def project_status_summary(projects: list) -> dict:
    counts = {status: 0 for status in PROJECT_STATUSES}
    for p in projects:
        status = p.get("status")
        if status in counts:
            counts[status] += 1

    total = len(projects)
    completion = int(round_half_up(counts[COMPLETED_PROJECT_STATUS] / total * 100)) if total else 0
    return {"counts": counts, "total": total, "completionPercentage": completion}


def assignment_counts(projects: list, user_roles: list, total_users: int) -> dict:
    """Employees holding a role on an in-progress project vs everyone else."""
    active = {str(p.get("projectID")) for p in projects if p.get("status") == ACTIVE_PROJECT_STATUS}
    assigned = {
        str(r.get("user_id"))
        for r in user_roles
        if r.get("project_id") is not None and str(r.get("project_id")) in active
    }
    return {"assigned": len(assigned), "unassigned": max(total_users - len(assigned), 0)}


# ─────────────────────────────────────────────────────────────────────────────
# TIMELINE
# ─────────────────────────────────────────────────────────────────────────────
_UNDATED = datetime.min


def parse_date(value):
    """ISO date/datetime → naive UTC datetime, or None."""
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _start_date(item: dict) -> datetime:
    if item["type"] == "project":
        dt = parse_date(item.get("startDate"))
    else:
        dt = parse_date(item.get("completedDate"))
    return dt or _UNDATED


def build_timeline(projects: list, certifications: list) -> list:
    """
    Projects plus approved certifications, newest first.
    Projects sort by startDate, certifications by completedDate; undated
    items go last.
    """
    items = [dict(p, type="project", displayDate=p.get("date")) for p in projects or []]
    items += [
        dict(c, type="certification", displayDate=c.get("date"))
        for c in certifications or []
        if c.get("status") == APPROVED_CERT_STATUS
    ]
    # stable: equal dates keep projects before certifications
    return sorted(items, key=_start_date, reverse=True)
