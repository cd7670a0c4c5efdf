"""
text_utils.py — PathExplorer Matching Service
Text utilities: preprocessing, contact extraction, catalogue lookups
"""

import re

from config import PREPROCESS_MAX_LENGTH


# ── Text normalization ────────────────────────────────────────────────────────
def preprocess_text(text: str, max_length: int = PREPROCESS_MAX_LENGTH) -> str:
    """Lower-case, collapse whitespace and truncate. Blank input → ""."""
    if not text or not str(text).strip():
        return ""
    processed = re.sub(r"\s+", " ", str(text).lower()).strip()
    return processed[:max_length]


def normalize_text(text: str) -> str:
    """Clean raw extracted text: bullets → space, collapse runs of blank lines."""
    text = re.sub(r"[•·▪▸►‣⁃◦]+", " ", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n+", "\n\n", text)
    return text.strip()


def tokenize(text: str) -> list:
    """Words with punctuation stripped, as used by the fallback embedding."""
    cleaned = re.sub(r"[^\w\s]", "", (text or "").lower())
    return [w for w in cleaned.split() if w]


# ── Contact extraction ────────────────────────────────────────────────────────
_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_RE = re.compile(r"(?:\+\d{1,3}[\s.-]?)?(?:\(?\d{2,4}\)?[\s.-]?){2,4}\d{2,4}")
_NAME_RE  = re.compile(r"\b([A-ZÁÉÍÓÚÑ][a-záéíóúñ]+)\s+([A-ZÁÉÍÓÚÑ][a-záéíóúñ]+)\b")


def extract_email(text: str) -> str:
    m = _EMAIL_RE.search(text or "")
    return m.group(0) if m else ""


def extract_phone(text: str) -> str:
    """First phone-looking run with at least 9 digits."""
    for m in _PHONE_RE.finditer(text or ""):
        candidate = m.group(0).strip()
        if len(re.sub(r"\D", "", candidate)) >= 9:
            return candidate
    return ""


def guess_name(text: str) -> tuple:
    """
    Returns (first_name, last_name) from the first two capitalized words
    found in the top lines of a CV, or ("", "").
    """
    head = "\n".join((text or "").splitlines()[:5])
    m = _NAME_RE.search(head) or _NAME_RE.search(text or "")
    if not m:
        return "", ""
    return m.group(1), m.group(2)


# ── Catalogue lookups ─────────────────────────────────────────────────────────
def _contains_term(text_lower: str, term: str) -> bool:
    # word-boundary safe, tolerant of symbols like "c++" or "node.js"
    pattern = r"(?<![a-z0-9])" + re.escape(term.lower()) + r"(?![a-z0-9])"
    return re.search(pattern, text_lower) is not None


def find_skills_in_text(text: str, available_skills: list) -> list:
    """
    Returns [{"name": ...}] for every catalogue skill named in the text,
    in catalogue order.
    """
    text_lower = (text or "").lower()
    found = []
    seen = set()
    for skill in available_skills or []:
        name = (skill or {}).get("name")
        if not name or name.lower() in seen:
            continue
        if _contains_term(text_lower, name):
            found.append({"name": name})
            seen.add(name.lower())
    return found


def detect_role(text: str, available_roles: list) -> str:
    """The catalogue role mentioned earliest in the text, or ""."""
    text_lower = (text or "").lower()
    best, best_pos = "", None
    for role in available_roles or []:
        if not role:
            continue
        pattern = r"(?<![a-z0-9])" + re.escape(str(role).lower()) + r"(?![a-z0-9])"
        m = re.search(pattern, text_lower)
        if m and (best_pos is None or m.start() < best_pos):
            best, best_pos = str(role), m.start()
    return best
