"""
ai_client.py — PathExplorer Matching Service
Shared OpenAI client. None when no API key is configured.
"""

import logging
from functools import lru_cache

from openai import OpenAI

from config import OPENAI_API_KEY

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client():
    if not OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set; AI calls will use local fallbacks")
        return None
    return OpenAI(api_key=OPENAI_API_KEY)


def api_key_configured() -> bool:
    return bool(OPENAI_API_KEY)
