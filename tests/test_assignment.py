"""
Unit tests for role assignment.
"""

import pytest

from assignment import (
    AssignmentConflict,
    assign_manually,
    auto_assign,
    find_conflicts,
    role_key,
    unassign,
)


def _match(emp_id, combined, technical=0):
    return {"id": emp_id, "name": f"Employee {emp_id}",
            "combinedScore": combined, "technicalScore": technical}


@pytest.fixture
def role_matches():
    return [
        {"role": {"id": "a", "name": "Backend"},
         "matches": [_match("u1", 90), _match("u2", 80), _match("u3", 60)]},
        {"role": {"id": "b", "name": "Frontend"},
         "matches": [_match("u1", 85), _match("u2", 70)]},
    ]


class TestAutoAssign:
    """Greedy one-employee-per-role assignment."""

    def test_best_pair_first_then_next_best(self, role_matches):
        plan = auto_assign(role_matches)

        assigned = {a["roleKey"]: a["employee"]["id"] for a in plan["assignments"]}
        assert assigned == {"a": "u1", "b": "u2"}
        assert plan["unfilled"] == []
        assert [m["id"] for m in plan["alternates"]["a"]] == ["u3"]
        assert plan["alternates"]["b"] == []

    def test_no_employee_holds_two_roles(self, role_matches):
        plan = auto_assign(role_matches)
        ids = [a["employee"]["id"] for a in plan["assignments"] if a["employee"]]
        assert len(ids) == len(set(ids))

    def test_already_taken_employees_skipped(self, role_matches):
        plan = auto_assign(role_matches, taken=["u1"])
        assigned = {a["roleKey"]: (a["employee"] or {}).get("id") for a in plan["assignments"]}
        assert assigned == {"a": "u2", "b": None}
        assert plan["unfilled"] == ["b"]

    def test_min_score(self, role_matches):
        plan = auto_assign(role_matches, min_score=85)
        assert plan["assignments"][0]["employee"]["id"] == "u1"
        assert plan["assignments"][1]["employee"] is None
        assert plan["unfilled"] == ["b"]

    def test_technical_score_breaks_ties(self):
        plan = auto_assign([
            {"role": {"id": "x"}, "matches": [_match(1, 70, technical=40), _match(2, 70, technical=90)]},
        ])
        assert plan["assignments"][0]["employee"]["id"] == 2

    def test_duplicate_role_keys_rejected(self):
        with pytest.raises(ValueError):
            auto_assign([{"role": {"id": 1}, "matches": []}, {"role": {"id": "1"}, "matches": []}])

    def test_role_key_fallbacks(self):
        assert role_key({"id": 7, "name": "Dev"}, 0) == "7"
        assert role_key({"name": "Dev"}, 0) == "Dev"
        assert role_key({}, 3) == "role-3"


class TestManualAssignment:
    """Manual slot edits."""

    def test_conflict_raised_for_second_role(self):
        current = {"a": "u1", "b": None}
        with pytest.raises(AssignmentConflict) as exc:
            assign_manually(current, "b", "u1")
        assert exc.value.employee_id == "u1"
        assert exc.value.other_role_key == "a"

    def test_assign_returns_new_mapping(self):
        current = {"a": "u1", "b": None}
        updated = assign_manually(current, "b", "u2")
        assert updated == {"a": "u1", "b": "u2"}
        assert current["b"] is None

    def test_reassigning_same_role_is_allowed(self):
        assert assign_manually({"a": "u1"}, "a", "u1") == {"a": "u1"}

    def test_unassign(self):
        assert unassign({"a": "u1"}, "a") == {"a": None}


class TestFindConflicts:
    """Validation of proposed assignment sets."""

    def test_double_booking_detected_across_id_types(self):
        conflicts = find_conflicts([
            {"roleKey": "a", "employeeId": 1},
            {"roleKey": "b", "employeeId": "1"},
            {"roleKey": "c", "employeeId": 2},
        ])
        assert conflicts == [{"employeeId": 1, "roles": ["a", "b"], "alreadyAssigned": False}]

    def test_already_assigned_employee(self):
        conflicts = find_conflicts([{"roleKey": "a", "employeeId": 5}], taken=[5])
        assert conflicts[0]["alreadyAssigned"] is True

    def test_open_slots_ignored(self):
        assert find_conflicts([{"roleKey": "a", "employeeId": None},
                               {"roleKey": "b", "employeeId": None}]) == []

    def test_non_object_entry_rejected(self):
        with pytest.raises(ValueError, match="assignment must be an object"):
            find_conflicts(["u1"])

    def test_taken_must_be_list(self):
        with pytest.raises(ValueError, match="assignedEmployeeIds"):
            find_conflicts([], taken=7)
        with pytest.raises(ValueError, match="assignedEmployeeIds"):
            auto_assign([], taken="u1")
