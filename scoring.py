"""
scoring.py — PathExplorer Matching Service
Core matching engine. Combines a technical skill score with a contextual
(embedding similarity) score under dynamic or recruiter-chosen weights.
"""

import logging
import math
from decimal import Decimal, ROUND_HALF_UP

from config import (
    PROFICIENCY_SCORES, DEFAULT_PROFICIENCY, DEFAULT_PROFICIENCY_SCORE,
    YEARS_WEIGHT, PROFICIENCY_WEIGHT, DEFAULT_WEIGHTS, WEIGHT_BOUNDS,
    MIN_CLASSIFIED_SKILLS, SOFT_KEYWORD_FACTOR, TECHNICAL_SKILL_TYPES, SOFT_SKILL_TYPES,
    TECHNICAL_KEYWORDS, SOFT_KEYWORDS, HIGHLY_TECHNICAL_PHRASES, HIGHLY_TECHNICAL_WEIGHTS,
    CULTURE_PHRASES, CULTURE_WEIGHTS, WEIGHT_PROFILES, MATCH_SCALE,
)
from embeddings import contextual_similarities, get_embedding_service

logger = logging.getLogger(__name__)


class MatchingInputError(ValueError):
    """Request payload cannot be scored."""


def round_half_up(value: float, ndigits: int = 0) -> float:
    quant = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quant, rounding=ROUND_HALF_UP))


def skill_id(skill: dict, *keys):
    for key in keys:
        value = skill.get(key)
        if value:
            return value
    return None


# ─────────────────────────────────────────────────────────────────────────────
# MAIN ENTRY POINT
# ─────────────────────────────────────────────────────────────────────────────
def get_matches(role: dict, employees: list, skill_map: dict = None, service=None,
                weights: dict = None, profile: str = None) -> dict:
    """
    Score every employee against one role.

    Args:
        role: {"name"|"role", "description", "skills": [{"id"|"skill_ID", "importance", "years"}]}
        employees: [{"id", "name", "bio", "skills": [{"skill_ID"|"id", "proficiency", "year_Exp"}]}]
        skill_map: {skill_id: {"name", "type"}} used to classify role skills
        service: EmbeddingService, defaults to the process-wide one
        weights: explicit {"technical", "contextual"} override
        profile: WEIGHT_PROFILES key override

    Returns:
        {"matches": [...], "weights": {...}, "totalCandidates": int, "message": str}
        Matches are sorted best first and carry a 1-based rank.
    """
    _validate_role(role)
    _validate_employees(employees)
    return match_roles([role], employees, skill_map, service, weights, profile)[0]


def match_roles(roles: list, employees: list, skill_map: dict = None, service=None,
                weights: dict = None, profile: str = None) -> list:
    """
    Score every employee against several roles with a single embedding batch.
    Returns one get_matches-shaped result per role, in role order.
    """
    if not isinstance(roles, list) or not roles:
        raise MatchingInputError("At least one role is required")
    for role in roles:
        _validate_role(role)
    _validate_employees(employees)

    skill_map = skill_map or {}
    _validate_skill_map(skill_map)
    service = service or get_embedding_service()

    # ── Embed role descriptions + bios ONCE ──────────────────────────────────
    texts = [r.get("description") or "" for r in roles]
    texts += [e.get("bio") or "" for e in employees]
    vectors = service.get_batch_embeddings(texts)
    role_vectors = vectors[:len(roles)]
    candidate_vectors = vectors[len(roles):]

    results = []
    for role, role_vector in zip(roles, role_vectors):
        results.append(_score_role(role, employees, role_vector, candidate_vectors,
                                   skill_map, weights, profile))
    return results


def _score_role(role, employees, role_vector, candidate_vectors, skill_map,
                weights, profile) -> dict:
    role_skills = role.get("skills") or []
    role_name = role.get("role") or role.get("name") or "Role"

    technical = [calculate_skill_match(e.get("skills") or [], role_skills) for e in employees]
    contextual = contextual_similarities(role_vector, candidate_vectors)
    alpha, beta = resolve_weights(role.get("description") or "", role_skills, skill_map,
                                  weights, profile)
    percent = weights_as_percent(alpha, beta)

    matches = []
    for idx, employee in enumerate(employees):
        combined = combine_scores(technical[idx], contextual[idx], alpha, beta)
        matches.append({
            "id":              employee.get("id"),
            "name":            employee.get("name"),
            "avatar":          employee.get("avatar") or employee.get("profilePic"),
            "technicalScore":  technical[idx],
            "contextualScore": contextual[idx],
            "combinedScore":   combined,
            "score":           combined,
            "label":           match_label(combined),
            "weights":         dict(percent),
            "_order":          idx,
        })

    # ── Sort & assign ranks ──────────────────────────────────────────────────
    matches.sort(key=lambda m: (-m["combinedScore"], -m["technicalScore"], m["_order"]))
    for i, m in enumerate(matches):
        m["rank"] = i + 1
        del m["_order"]

    logger.info("Scored %d candidate(s) for '%s' (technical %.0f%% / contextual %.0f%%)",
                len(employees), role_name, alpha * 100, beta * 100)

    return {
        "role":            role_name,
        "matches":         matches,
        "weights":         percent,
        "totalCandidates": len(employees),
        "message":         "Matching processed successfully",
    }


def _validate_skill_list(skills, owner: str):
    if skills is None:
        return
    if not isinstance(skills, list):
        raise MatchingInputError(f"{owner}.skills must be a list")
    for skill in skills:
        if not isinstance(skill, dict):
            raise MatchingInputError(f"Every entry in {owner}.skills must be an object")


def _validate_role(role):
    if not isinstance(role, dict) or not role:
        raise MatchingInputError("Insufficient information: a role object is required")
    description = role.get("description")
    if description is not None and not isinstance(description, str):
        raise MatchingInputError("role.description must be a string")
    _validate_skill_list(role.get("skills"), "role")


def _validate_employees(employees):
    if not isinstance(employees, list) or not employees:
        raise MatchingInputError("Insufficient information: employees must be a non-empty list")
    for e in employees:
        if not isinstance(e, dict):
            raise MatchingInputError("Every employee must be an object")
        _validate_skill_list(e.get("skills"), "employee")


def _validate_skill_map(skill_map):
    if not isinstance(skill_map, dict):
        raise MatchingInputError("skillMap must be an object keyed by skill id")
    for info in skill_map.values():
        if not isinstance(info, dict):
            raise MatchingInputError("Every skillMap entry must be an object")


def _as_number(value, field: str, default: float) -> float:
    """Numeric request field; missing or blank gives `default`."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise MatchingInputError(f"{field} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MatchingInputError(f"{field} must be a number")


# ─────────────────────────────────────────────────────────────────────────────
# TECHNICAL SCORE
# ─────────────────────────────────────────────────────────────────────────────
def proficiency_score(level) -> float:
    if not isinstance(level, str):
        return DEFAULT_PROFICIENCY_SCORE
    return PROFICIENCY_SCORES.get(level, DEFAULT_PROFICIENCY_SCORE)


def calculate_skill_match(employee_skills: list, role_skills: list) -> int:
    """
    Importance-weighted coverage of the role's skills, 0-100.

    Each role skill the employee holds contributes
    (years_ratio * YEARS_WEIGHT + proficiency * PROFICIENCY_WEIGHT) * importance,
    where years_ratio = min(employee_years / max(required_years, 1), 1).
    Missing skills contribute nothing but still count toward total importance.
    """
    if not employee_skills or not role_skills:
        return 0

    required = {}
    for skill in role_skills:
        sid = skill_id(skill, "id", "skill_ID")
        if sid:
            required[str(sid)] = {
                "importance": _as_number(skill.get("importance"), "importance", 1) or 1,
                "years":      _as_number(skill.get("years"), "years", 0),
            }

    held = {}
    for skill in employee_skills:
        sid = skill_id(skill, "skill_ID", "id")
        if sid:
            held[str(sid)] = {
                "proficiency": skill.get("proficiency") or DEFAULT_PROFICIENCY,
                "years":       _as_number(skill.get("year_Exp") or skill.get("yearExp"), "year_Exp", 0),
            }

    total_importance = 0.0
    score = 0.0
    for sid, req in required.items():
        total_importance += req["importance"]
        emp = held.get(sid)
        if emp is None:
            continue
        years_match = min(emp["years"] / max(req["years"], 1), 1)
        blended = years_match * YEARS_WEIGHT + proficiency_score(emp["proficiency"]) * PROFICIENCY_WEIGHT
        score += blended * req["importance"]

    if total_importance <= 0:
        return 0
    return int(math.floor(score / total_importance * 100))


# ─────────────────────────────────────────────────────────────────────────────
# WEIGHTS
# ─────────────────────────────────────────────────────────────────────────────
def _lookup_skill(skill_map: dict, sid):
    if sid in skill_map:
        return skill_map[sid]
    return skill_map.get(str(sid))


def classify_role_skills(role_skills: list, skill_map: dict) -> tuple:
    """Split role skills into (technical, soft) using the skill catalogue."""
    technical, soft = [], []
    if not role_skills or not skill_map:
        return technical, soft

    for skill in role_skills:
        sid = skill_id(skill, "id", "skill_ID")
        info = _lookup_skill(skill_map, sid) if sid else None
        if not info:
            continue
        kind = str(info.get("type") or info.get("skillType") or "unknown").lower()
        entry = dict(skill,
                     name=info.get("name") or f"Skill #{sid}",
                     importance=_as_number(skill.get("importance"), "importance", 1) or 1)
        if kind in TECHNICAL_SKILL_TYPES:
            technical.append(entry)
        elif kind in SOFT_SKILL_TYPES:
            soft.append(entry)
    return technical, soft


def _keyword_hits(text_lower: str, keywords: list) -> int:
    return sum(1 for kw in keywords if kw.lower() in text_lower)


def calculate_dynamic_weights(role_description: str = "", role_skills: list = None,
                              skill_map: dict = None) -> tuple:
    """
    Returns (alpha, beta): the technical and contextual weights for a role.

    Skill importances decide the split when enough role skills are classified;
    otherwise the description's keyword mix does. The split is clamped to
    WEIGHT_BOUNDS and renormalised. Specific phrases in the description
    override the result.
    """
    alpha, beta = DEFAULT_WEIGHTS["technical"], DEFAULT_WEIGHTS["contextual"]

    technical, soft = classify_role_skills(role_skills or [], skill_map or {})
    tech_importance = sum(s["importance"] for s in technical)
    soft_importance = sum(s["importance"] for s in soft)

    insufficient = (tech_importance == 0 and soft_importance == 0) or \
                   len(technical) + len(soft) < MIN_CLASSIFIED_SKILLS
    desc_lower = (role_description or "").lower()

    if insufficient and desc_lower.strip():
        tech_hits = _keyword_hits(desc_lower, TECHNICAL_KEYWORDS)
        soft_hits = _keyword_hits(desc_lower, SOFT_KEYWORDS)
        tech_importance = tech_hits
        soft_importance = soft_hits * SOFT_KEYWORD_FACTOR
        logger.debug("Description analysis: %d technical / %d soft keyword(s)", tech_hits, soft_hits)

    total = tech_importance + soft_importance
    if total > 0:
        t_lo, t_hi = WEIGHT_BOUNDS["technical"]
        c_lo, c_hi = WEIGHT_BOUNDS["contextual"]
        alpha = min(max(tech_importance / total, t_lo), t_hi)
        beta = min(max(soft_importance / total, c_lo), c_hi)
        norm = alpha + beta
        alpha, beta = alpha / norm, beta / norm

    if any(p in desc_lower for p in HIGHLY_TECHNICAL_PHRASES):
        alpha, beta = HIGHLY_TECHNICAL_WEIGHTS
    elif any(p in desc_lower for p in CULTURE_PHRASES):
        alpha, beta = CULTURE_WEIGHTS

    return alpha, beta


def normalize_weights(weights: dict) -> tuple:
    """
    Accepts {"technical": x, "contextual": y} as fractions or percentages.
    Returns (alpha, beta) summing to 1.
    """
    if not isinstance(weights, dict):
        raise MatchingInputError("weights must be an object with 'technical' and 'contextual'")
    try:
        tech = float(weights.get("technical", 0))
        ctx = float(weights.get("contextual", 0))
    except (TypeError, ValueError):
        raise MatchingInputError("weights must be numeric")
    if tech < 0 or ctx < 0:
        raise MatchingInputError("weights cannot be negative")
    total = tech + ctx
    if total <= 0:
        raise MatchingInputError("weights must not both be zero")
    return tech / total, ctx / total


def resolve_weights(role_description: str, role_skills: list, skill_map: dict,
                    weights: dict = None, profile: str = None) -> tuple:
    """Explicit weights beat a named profile, which beats dynamic weights."""
    if weights:
        return normalize_weights(weights)
    if profile:
        if profile not in WEIGHT_PROFILES:
            raise MatchingInputError(
                f"Unknown weight profile '{profile}'. Choose one of: {', '.join(WEIGHT_PROFILES)}")
        return normalize_weights(WEIGHT_PROFILES[profile]["weights"])
    return calculate_dynamic_weights(role_description, role_skills, skill_map)


def weights_as_percent(alpha: float, beta: float) -> dict:
    """Integer percentages that always add up to 100."""
    technical = int(round_half_up(alpha * 100))
    return {"technical": technical, "contextual": 100 - technical}


# ─────────────────────────────────────────────────────────────────────────────
# COMBINATION
# ─────────────────────────────────────────────────────────────────────────────
def combine_scores(technical: int, contextual: int, alpha: float, beta: float) -> int:
    # round away float noise first so 0.3*3 + 0.7*3 floors to 3, not 2
    return min(int(math.floor(round(alpha * technical + beta * contextual, 9))), 100)


def match_label(score: float) -> str:
    for threshold, label in MATCH_SCALE:
        if score >= threshold:
            return label
    return MATCH_SCALE[-1][1]
