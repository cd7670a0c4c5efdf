"""
cv_parser.py — PathExplorer Matching Service
CV upload → structured profile fields for the employee onboarding form.
Text is extracted locally, then analysed by a chat model in JSON mode.
"""

import hashlib
import io
import json
import logging
import os
import time

import pdfplumber
from docx import Document

from ai_client import get_client
from cache import TimedCache
from config import (
    CV_CHAT_MODEL, CV_TEMPERATURE, CV_MAX_TEXT_LENGTH, CV_CACHE_TTL, CV_CACHE_SIZE,
    CV_MIN_TEXT_LENGTH, PDF_MIMETYPES, DOCX_MIMETYPES, DOC_MIMETYPES, TEXT_MIMETYPES,
    ALLOWED_EXTENSIONS, DEFAULT_SKILL_TYPE,
)
from text_utils import (
    normalize_text, extract_email, extract_phone, guess_name,
    find_skills_in_text, detect_role,
)

logger = logging.getLogger(__name__)

_parse_cache = TimedCache(ttl=CV_CACHE_TTL, maxsize=CV_CACHE_SIZE)

PROFILE_FIELDS = {
    "firstName": "", "lastName": "", "email": "", "phone": "", "role": "", "about": "",
    "skills": [], "education": [], "workExperience": [], "languages": [],
}


class CVParseError(ValueError):
    """The CV could not be turned into text."""


class UnsupportedFileType(CVParseError):
    """Only PDF, DOCX and plain text CVs are accepted."""


# ── Text extraction ───────────────────────────────────────────────────────────
def file_kind(filename: str, mimetype: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    mimetype = (mimetype or "").lower()
    if mimetype in PDF_MIMETYPES or ext == ".pdf":
        return "pdf"
    if mimetype in DOCX_MIMETYPES or ext == ".docx":
        return "docx"
    if mimetype in DOC_MIMETYPES or ext == ".doc":
        raise UnsupportedFileType("Legacy .doc files are not supported. Save the CV as PDF or DOCX.")
    if mimetype in TEXT_MIMETYPES or ext in (".txt", ".md"):
        return "text"
    raise UnsupportedFileType(
        f"Unsupported file format ({ext or mimetype or 'unknown'}). "
        f"Upload one of: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
    )


def extract_text(data: bytes, filename: str, mimetype: str = "") -> str:
    kind = file_kind(filename, mimetype)

    if kind == "pdf":
        pages = []
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for page in pdf.pages:
                    t = page.extract_text()
                    if t:
                        pages.append(t)
        except Exception as e:
            raise CVParseError(f"{filename}: could not read PDF ({e})") from e
        text = "\n".join(pages)

    elif kind == "docx":
        try:
            doc = Document(io.BytesIO(data))
        except Exception as e:
            raise CVParseError(f"{filename}: could not read DOCX ({e})") from e
        text = "\n".join(p.text for p in doc.paragraphs)

    else:
        text = data.decode("utf-8", errors="ignore")

    text = normalize_text(text)
    if len(text) < CV_MIN_TEXT_LENGTH:
        raise CVParseError(f"{filename}: could not extract text (is it a scanned PDF?)")
    return text


# ── AI analysis ───────────────────────────────────────────────────────────────
def build_system_prompt(available_skills: list, available_roles: list) -> str:
    skill_names = ", ".join(s.get("name", "") for s in available_skills if s.get("name"))
    role_names = ", ".join(str(r) for r in available_roles if r)
    schema = json.dumps({
        "firstName": "", "lastName": "", "email": "", "phone": "", "role": "", "about": "",
        "skills": [{"name": "skill name"}],
        "education": [{"institution": "", "degree": "", "year": ""}],
        "workExperience": [{"company": "", "position": "", "duration": "", "description": ""}],
        "languages": [{"name": "", "level": ""}],
    }, indent=2)
    return (
        "You are an expert CV analyst that extracts structured information from resumes.\n"
        "Extract: first name, last name, email, phone number, skills (from the list provided), "
        "the most appropriate role (from the list provided), education history "
        "(institution, degree, year), work experience (company, position, duration, "
        "description), languages with proficiency, and a short professional summary "
        "for the \"About\" section.\n\n"
        f"Available skills: {skill_names}\n"
        f"Available roles: {role_names}\n\n"
        f"Reply with a single JSON object with this structure:\n{schema}\n\n"
        "Leave a field as an empty string or empty array when the CV does not contain it."
    )


def analyze_with_openai(cv_text: str, available_skills: list, available_roles: list) -> dict:
    """
    Structured profile from CV text via the chat model. Falls back to
    heuristic_profile when no client is configured or the call fails.
    """
    client = get_client()
    if client is None:
        logger.warning("No OpenAI client, using heuristic CV extraction")
        return heuristic_profile(cv_text, available_skills, available_roles)

    truncated = cv_text[:CV_MAX_TEXT_LENGTH]
    try:
        response = client.chat.completions.create(
            model=CV_CHAT_MODEL,
            messages=[
                {"role": "system", "content": build_system_prompt(available_skills, available_roles)},
                {"role": "user", "content": truncated},
            ],
            response_format={"type": "json_object"},
            temperature=CV_TEMPERATURE,
        )
        content = response.choices[0].message.content.strip()
        parsed = json.loads(content)
        if not isinstance(parsed, dict):
            raise ValueError("model reply is not a JSON object")
    except Exception as e:
        logger.warning("CV analysis with OpenAI failed (%s); using heuristic extraction", e)
        return heuristic_profile(cv_text, available_skills, available_roles)

    return _with_defaults(parsed)


def heuristic_profile(cv_text: str, available_skills: list, available_roles: list) -> dict:
    """Deterministic extraction of the same schema, no model involved."""
    first, last = guess_name(cv_text)
    return _with_defaults({
        "firstName": first,
        "lastName":  last,
        "email":     extract_email(cv_text),
        "phone":     extract_phone(cv_text),
        "role":      detect_role(cv_text, available_roles),
        "skills":    find_skills_in_text(cv_text, available_skills),
    })


def _with_defaults(profile: dict) -> dict:
    result = {}
    for field, default in PROFILE_FIELDS.items():
        value = profile.get(field)
        if isinstance(default, list):
            result[field] = value if isinstance(value, list) else []
        else:
            result[field] = str(value) if value is not None else ""
    return result


# ── Skill mapping ─────────────────────────────────────────────────────────────
def _catalogue_entry(skill: dict) -> dict:
    return {
        "id":   skill.get("id") or skill.get("skill_ID"),
        "name": skill.get("name"),
        "type": skill.get("type") or DEFAULT_SKILL_TYPE,
    }


def map_skills(detected_skills: list, available_skills: list) -> list:
    """
    Map skill names detected in the CV onto catalogue skills.
    Exact (case-insensitive) match first, then containment either way.
    Unmatched names are dropped.
    """
    if not detected_skills or not available_skills:
        return []

    catalogue = [s for s in available_skills if isinstance(s, dict) and s.get("name")]
    mapped = []
    for detected in detected_skills:
        name = (detected or {}).get("name") if isinstance(detected, dict) else detected
        if not name:
            continue
        name_lower = str(name).lower()

        match = next((s for s in catalogue if s["name"].lower() == name_lower), None)
        if match is None:
            match = next((s for s in catalogue
                          if name_lower in s["name"].lower() or s["name"].lower() in name_lower),
                         None)
        if match is not None:
            mapped.append(_catalogue_entry(match))
    return mapped


def _validate_catalogue(available_skills: list, available_roles: list):
    for skill in available_skills:
        if not isinstance(skill, dict):
            raise CVParseError("availableSkills entries must be objects with a name")
        name = skill.get("name")
        if name is not None and not isinstance(name, str):
            raise CVParseError("availableSkills names must be strings")
    for role in available_roles:
        if not isinstance(role, str):
            raise CVParseError("availableRoles entries must be strings")


# ─────────────────────────────────────────────────────────────────────────────
# MAIN ENTRY POINT
# ─────────────────────────────────────────────────────────────────────────────
def parse_cv(data: bytes, filename: str, mimetype: str = "",
             available_skills: list = None, available_roles: list = None) -> dict:
    """
    Returns the structured profile for one CV file.
    Results are cached by file content and catalogue for CV_CACHE_TTL seconds.
    """
    available_skills = available_skills or []
    available_roles = available_roles or []
    _validate_catalogue(available_skills, available_roles)

    key = hashlib.sha256(
        data + json.dumps([available_skills, available_roles], sort_keys=True, default=str).encode()
    ).hexdigest()
    cached = _parse_cache.get(key)
    if cached is not None:
        logger.info("CV parse cache hit for %s", filename)
        return cached

    start = time.perf_counter()
    text = extract_text(data, filename, mimetype)
    logger.info("Extracted %d characters from %s", len(text), filename)

    parsed = analyze_with_openai(text, available_skills, available_roles)
    result = dict(parsed, skills=map_skills(parsed.get("skills"), available_skills))

    _parse_cache[key] = result
    logger.info("CV %s parsed in %.2fs", filename, time.perf_counter() - start)
    return result


def clear_cache():
    _parse_cache.clear()
