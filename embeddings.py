"""
embeddings.py — PathExplorer Matching Service
Embedding vectors for role descriptions and employee bios, with a TTL cache
and a keyword-category fallback when the embedding API is unavailable.
"""

import hashlib
import logging
import math
import time

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _sk_cosine

from ai_client import get_client
from cache import TimedCache
from config import (
    EMBEDDING_MODEL, EMBEDDING_DIMENSIONS, EMBEDDING_CACHE_TTL, EMBEDDING_CACHE_SIZE,
    SIMPLE_EMBEDDING_CATEGORIES, SIMPLE_EMBEDDING_SLOTS,
)
from text_utils import preprocess_text, tokenize

logger = logging.getLogger(__name__)


def cache_key(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def zero_vector() -> list:
    return [0.0] * EMBEDDING_DIMENSIONS


# ─────────────────────────────────────────────────────────────────────────────
# FALLBACK EMBEDDING
# ─────────────────────────────────────────────────────────────────────────────
def generate_simple_embedding(text: str) -> list:
    """
    Keyword-category vector used when no embedding API is reachable.

    One slot per category in SIMPLE_EMBEDDING_CATEGORIES holding the share of
    words that contain one of its keywords, followed by the share of words
    that matched no category. Zero-padded to EMBEDDING_DIMENSIONS.
    """
    if not text or not text.strip():
        return zero_vector()

    words = tokenize(text)
    vector = [0.0] * SIMPLE_EMBEDDING_SLOTS
    other_words = 0

    for word in words:
        found = False
        for idx, keywords in enumerate(SIMPLE_EMBEDDING_CATEGORIES.values()):
            if any(kw in word for kw in keywords):
                vector[idx] += 1
                found = True
        if not found:
            other_words += 1

    total = len(words) or 1
    vector = [v / total for v in vector]
    vector.append(other_words / total)
    vector.extend([0.0] * (EMBEDDING_DIMENSIONS - len(vector)))
    return vector


# ─────────────────────────────────────────────────────────────────────────────
# SIMILARITY
# ─────────────────────────────────────────────────────────────────────────────
def cosine_similarity(vec_a, vec_b) -> float:
    """Cosine over the common prefix of both vectors. Zero norm → 0."""
    if vec_a is None or vec_b is None or not len(vec_a) or not len(vec_b):
        return 0.0
    n = min(len(vec_a), len(vec_b))
    a = np.asarray(vec_a[:n], dtype=float)
    b = np.asarray(vec_b[:n], dtype=float)
    norm_a, norm_b = np.linalg.norm(a), np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def contextual_similarities(role_embedding, candidate_embeddings) -> list:
    """
    Integer 0-100 similarity of each candidate vector against the role vector.
    Scores are floored, negatives clamp to 0.
    """
    if not candidate_embeddings:
        return []
    if role_embedding is None or not len(role_embedding):
        return [0 for _ in candidate_embeddings]

    n = min([len(role_embedding)] + [len(c) for c in candidate_embeddings])
    if n == 0:
        return [0 for _ in candidate_embeddings]

    role_mat = np.asarray([role_embedding[:n]], dtype=float)
    cand_mat = np.asarray([c[:n] for c in candidate_embeddings], dtype=float)
    # zero rows normalise to zero, giving similarity 0
    sims = _sk_cosine(role_mat, cand_mat)[0]
    return [max(0, min(int(math.floor(float(s) * 100)), 100)) for s in sims]


# ─────────────────────────────────────────────────────────────────────────────
# SERVICE
# ─────────────────────────────────────────────────────────────────────────────
class EmbeddingService:
    """Batched, cached access to the embedding API."""

    def __init__(self, client=None, model: str = EMBEDDING_MODEL,
                 ttl: int = EMBEDDING_CACHE_TTL, maxsize: int = EMBEDDING_CACHE_SIZE):
        self._client = client
        self._client_resolved = client is not None
        self.model = model
        self.cache = TimedCache(ttl=ttl, maxsize=maxsize)

    @property
    def client(self):
        if not self._client_resolved:
            self._client = get_client()
            self._client_resolved = True
        return self._client

    @property
    def available(self) -> bool:
        return self.client is not None

    def get_embedding(self, text: str) -> list:
        return self.get_batch_embeddings([text])[0]

    def get_batch_embeddings(self, texts: list) -> list:
        """
        Returns one vector per input text, in order.

        Blank texts get a zero vector. Cached texts are served from the TTL
        cache; the rest go to the API in a single request. When the API is
        unavailable or fails, those texts get the fallback embedding.
        """
        if not texts:
            return []

        processed = [preprocess_text(t or "") for t in texts]
        results = [None] * len(texts)
        pending_idx = []

        for i, text in enumerate(processed):
            if not text:
                results[i] = zero_vector()
                continue
            cached = self.cache.get(cache_key(text))
            if cached is not None:
                results[i] = cached
            else:
                pending_idx.append(i)

        if not pending_idx:
            return results

        # identical texts within one batch are requested once
        unique_texts = list(dict.fromkeys(processed[i] for i in pending_idx))

        if not self.available:
            logger.warning("No embedding client, using keyword embeddings for %d text(s)",
                           len(unique_texts))
            for i in pending_idx:
                results[i] = generate_simple_embedding(processed[i])
            return results

        try:
            start = time.perf_counter()
            response = self.client.embeddings.create(model=self.model, input=unique_texts)
            logger.info("Embeddings fetched for %d text(s) in %.0fms",
                        len(unique_texts), (time.perf_counter() - start) * 1000)
            vectors = {}
            for text, item in zip(unique_texts, response.data):
                vector = list(item.embedding)
                self.cache[cache_key(text)] = vector
                vectors[text] = vector
            for i in pending_idx:
                results[i] = vectors.get(processed[i]) or generate_simple_embedding(processed[i])
        except Exception as e:
            logger.error("Embedding request failed: %s", e)
            for i in pending_idx:
                results[i] = generate_simple_embedding(processed[i])

        return results


_service = None


def get_embedding_service() -> EmbeddingService:
    global _service
    if _service is None:
        _service = EmbeddingService()
    return _service
