"""
assignment.py — PathExplorer Matching Service
Role assignment: fills a project's role slots from match results so that no
employee holds two roles in the same project.
"""

import logging

from config import MIN_ASSIGNMENT_SCORE

logger = logging.getLogger(__name__)


class AssignmentConflict(ValueError):
    """An employee would hold two roles in the same project."""

    def __init__(self, employee_id, role_key, other_role_key):
        self.employee_id = employee_id
        self.role_key = role_key
        self.other_role_key = other_role_key
        super().__init__(
            f"Employee {employee_id} is already assigned to role '{other_role_key}' "
            f"and cannot also take '{role_key}'"
        )


def role_key(role: dict, index: int) -> str:
    """Stable identifier for a role slot: id, then name, then position."""
    for key in ("id", "role_id", "name", "role"):
        value = (role or {}).get(key)
        if value not in (None, ""):
            return str(value)
    return f"role-{index}"


def _emp_key(employee_id) -> str:
    return str(employee_id)


def _id_list(ids) -> list:
    if not ids:
        return []
    if not isinstance(ids, (list, tuple, set)):
        raise ValueError("assignedEmployeeIds must be a list of employee ids")
    return list(ids)


# ─────────────────────────────────────────────────────────────────────────────
# GREEDY AUTO-ASSIGNMENT
# ─────────────────────────────────────────────────────────────────────────────
def auto_assign(role_matches: list, taken=(), min_score: int = MIN_ASSIGNMENT_SCORE) -> dict:
    """
    Assign at most one employee per role, never reusing an employee.

    Args:
        role_matches: [{"role": {...}, "matches": [match dicts from scoring.get_matches]}]
        taken: employee ids already holding a role in this project
        min_score: candidates below this combined score are never assigned

    Returns:
        {
          "assignments": [{"roleKey", "role", "employee": match | None}],
          "unfilled":    [roleKey, ...],
          "alternates":  {roleKey: [match, ...]}   # best first, excludes assigned employees
        }

    Pairs are taken in order of combined score, then technical score, then
    role order, so the strongest pairing across all roles wins first.
    """
    keys = [role_key(rm.get("role") or {}, i) for i, rm in enumerate(role_matches)]
    if len(set(keys)) != len(keys):
        raise ValueError("Role identifiers must be unique within a project")

    used = {_emp_key(e) for e in _id_list(taken)}

    pairs = []
    for r_idx, rm in enumerate(role_matches):
        for m_idx, match in enumerate(rm.get("matches") or []):
            if match.get("id") is None:
                continue
            if _emp_key(match["id"]) in used:
                continue
            if match.get("combinedScore", 0) < min_score:
                continue
            pairs.append((
                -match.get("combinedScore", 0),
                -match.get("technicalScore", 0),
                r_idx,
                m_idx,
                match,
            ))
    pairs.sort(key=lambda p: p[:4])

    chosen = {}
    for _, _, r_idx, _, match in pairs:
        if r_idx in chosen:
            continue
        emp = _emp_key(match["id"])
        if emp in used:
            continue
        chosen[r_idx] = match
        used.add(emp)

    assignments, unfilled, alternates = [], [], {}
    for r_idx, rm in enumerate(role_matches):
        key = keys[r_idx]
        match = chosen.get(r_idx)
        assignments.append({"roleKey": key, "role": rm.get("role"), "employee": match})
        if match is None:
            unfilled.append(key)
        alternates[key] = [
            m for m in sorted(rm.get("matches") or [],
                              key=lambda m: (-m.get("combinedScore", 0), -m.get("technicalScore", 0)))
            if m.get("id") is not None and _emp_key(m["id"]) not in used
        ]

    logger.info("Auto-assigned %d of %d role(s)", len(chosen), len(role_matches))
    return {"assignments": assignments, "unfilled": unfilled, "alternates": alternates}


# ─────────────────────────────────────────────────────────────────────────────
# MANUAL ASSIGNMENT
# ─────────────────────────────────────────────────────────────────────────────
def assign_manually(current: dict, role: str, employee_id) -> dict:
    """
    Place an employee in a role slot.

    `current` maps role key → employee id (None for an open slot). Returns a new
    mapping; the role's previous holder, if any, is released. Raises
    AssignmentConflict when the employee already holds a different role.
    """
    emp = _emp_key(employee_id)
    for other_role, holder in (current or {}).items():
        if holder is not None and _emp_key(holder) == emp and other_role != role:
            raise AssignmentConflict(employee_id, role, other_role)
    updated = dict(current or {})
    updated[role] = employee_id
    return updated


def unassign(current: dict, role: str) -> dict:
    updated = dict(current or {})
    updated[role] = None
    return updated


def find_conflicts(assignments: list, taken=()) -> list:
    """
    Every double-booking in a proposed assignment set.

    Args:
        assignments: [{"roleKey": str, "employeeId": id}]
        taken: employee ids already holding a role in the project

    Returns:
        [{"employeeId", "roles": [roleKey, ...], "alreadyAssigned": bool}]
    """
    by_employee = {}
    original_ids = {}
    for a in assignments or []:
        if not isinstance(a, dict):
            raise ValueError("Every assignment must be an object with roleKey and employeeId")
        emp_id = a.get("employeeId")
        if emp_id is None:
            continue
        key = _emp_key(emp_id)
        by_employee.setdefault(key, []).append(str(a.get("roleKey")))
        original_ids.setdefault(key, emp_id)

    taken_keys = {_emp_key(t) for t in _id_list(taken)}
    conflicts = []
    for key, roles in by_employee.items():
        already = key in taken_keys
        if len(roles) > 1 or already:
            conflicts.append({
                "employeeId":      original_ids[key],
                "roles":           roles,
                "alreadyAssigned": already,
            })
    return conflicts
