"""
config.py — PathExplorer Matching Service
Centralized configuration: scoring weights, skill taxonomy, AI models, limits
"""

import os

from dotenv import load_dotenv

load_dotenv()

# ── Environment ──────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
PORT           = int(os.getenv("PORT", "3001"))
LOG_LEVEL      = os.getenv("LOG_LEVEL", "INFO").upper()
REPORTS_DIR    = os.getenv("REPORTS_DIR", "reports")
MAX_UPLOAD_MB  = int(os.getenv("MAX_UPLOAD_MB", "10"))

# ── Technical score: proficiency table ──────────────────────────────────────
PROFICIENCY_SCORES = {
    "Expert":       1.00,
    "Advanced":     0.85,
    "High":         0.70,
    "Intermediate": 0.60,
    "Medium":       0.50,
    "Low":          0.30,
}
DEFAULT_PROFICIENCY       = "Low"
DEFAULT_PROFICIENCY_SCORE = 0.30

# Blend inside a single skill match
YEARS_WEIGHT       = 0.3
PROFICIENCY_WEIGHT = 0.7

# ── Combined score weights ──────────────────────────────────────────────────
DEFAULT_WEIGHTS = {"technical": 0.6, "contextual": 0.4}

WEIGHT_BOUNDS = {
    "technical":  (0.3, 0.8),
    "contextual": (0.2, 0.7),
}

# Below this many classified role skills the description is analysed instead
MIN_CLASSIFIED_SKILLS = 3
SOFT_KEYWORD_FACTOR   = 1.5

TECHNICAL_SKILL_TYPES = {"technical", "hard"}
SOFT_SKILL_TYPES      = {"soft", "personal"}

TECHNICAL_KEYWORDS = [
    "programación", "coding", "desarrollo", "development", "técnico",
    "technical", "react", "javascript", "python", "java", "frontend",
    "backend", "fullstack", "cloud", "database", "api", "arquitectura",
    "devops", "mobile", "web", "testing", "qa", "algorithm", "data",
    "analytics", "machine learning",
]

SOFT_KEYWORDS = [
    "comunicación", "communication", "liderazgo", "leadership",
    "trabajo en equipo", "teamwork", "creatividad", "creativity",
    "resolución de problemas", "problem solving", "gestión", "management",
    "colaboración", "collaboration", "adaptabilidad", "adaptability",
    "empatía", "empathy", "organización", "organization",
    "pensamiento crítico",
]

# Phrases in a role description that pin the weights outright
HIGHLY_TECHNICAL_PHRASES = ["altamente técnico", "highly technical"]
HIGHLY_TECHNICAL_WEIGHTS = (0.75, 0.25)

CULTURE_PHRASES = ["cultural fit", "soft skills", "trabajo en equipo", "liderazgo"]
CULTURE_WEIGHTS = (0.4, 0.6)

# ── Weight Profiles (recruiter may pick one instead of dynamic weights) ─────
WEIGHT_PROFILES = {
    "balanced": {
        "label": "Balanced",
        "description": "Default split between skills and profile fit",
        "weights": {"technical": 0.60, "contextual": 0.40},
    },
    "technical": {
        "label": "Highly Technical",
        "description": "Hands-on engineering roles, skills dominate",
        "weights": {"technical": 0.75, "contextual": 0.25},
    },
    "culture": {
        "label": "Culture / Leadership",
        "description": "Client-facing and leadership roles, bio fit dominates",
        "weights": {"technical": 0.40, "contextual": 0.60},
    },
}

# ── Match Labels ─────────────────────────────────────────────────────────────
MATCH_SCALE = [
    (90, "Excellent Match"),
    (75, "Strong Match"),
    (60, "Good Match"),
    (40, "Partial Match"),
    (0,  "Weak Match"),
]

# ── Embeddings ───────────────────────────────────────────────────────────────
EMBEDDING_MODEL        = "text-embedding-3-small"
EMBEDDING_DIMENSIONS   = 1536
EMBEDDING_CACHE_TTL    = 86400      # one day
EMBEDDING_CACHE_SIZE   = 4096
PREPROCESS_MAX_LENGTH  = 1000

# Fallback vector categories when no embedding API is reachable
SIMPLE_EMBEDDING_CATEGORIES = {
    "desarrollo": ["desarrollador", "developer", "programmer", "coder"],
    "frontend":   ["frontend", "html", "css", "javascript"],
    "backend":    ["backend", "server", "api", "database"],
    "seniority":  ["junior", "senior", "lead"],
}
SIMPLE_EMBEDDING_SLOTS = 10

# ── CV parsing ───────────────────────────────────────────────────────────────
CV_CHAT_MODEL       = "gpt-4-turbo"
CV_TEMPERATURE      = 0.3
CV_MAX_TEXT_LENGTH  = 14000
CV_CACHE_TTL        = 3600          # one hour
CV_CACHE_SIZE       = 256
CV_MIN_TEXT_LENGTH  = 30

PDF_MIMETYPES  = {"application/pdf"}
DOCX_MIMETYPES = {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"}
DOC_MIMETYPES  = {"application/msword"}
TEXT_MIMETYPES = {"text/plain", "text/markdown"}

ALLOWED_EXTENSIONS = {".pdf", ".docx", ".txt", ".md"}

DEFAULT_SKILL_TYPE = "Technical"

# ── Analytics ────────────────────────────────────────────────────────────────
PROJECT_STATUSES = ["Not Started", "In Progress", "On Hold", "Completed"]
ACTIVE_PROJECT_STATUS    = "In Progress"
COMPLETED_PROJECT_STATUS = "Completed"
APPROVED_CERT_STATUS     = "approved"

# ── Assignment ───────────────────────────────────────────────────────────────
MIN_ASSIGNMENT_SCORE = 0
