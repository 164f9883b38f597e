# products/services/cache.py

"""
======================================================
PATH: products/services/cache.py
======================================================
ADVISORY CACHE HELPERS

Purpose:
- Thin wrappers over django.core.cache used by the catalog facade, the tax
  calculator and the cart summary.
- Namespaced "generations": bumping a namespace invalidates every key built
  with versioned_key() for it, without scanning the cache.

Rules:
- The cache is an optimization only. Backend failures are logged and
  reported as a miss; callers always fall back to the database.
"""

from __future__ import annotations

import hashlib
import json
import logging

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

_MISS = object()


def ttl_for(kind: str) -> int:
    ttls = getattr(settings, "POS_CACHE_TTLS", {}) or {}
    return int(ttls.get(kind, 300))


def fingerprint(payload) -> str:
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _gen_key(namespace: str) -> str:
    return f"gen:{namespace}"


def generation(namespace: str) -> int:
    key = _gen_key(namespace)
    try:
        value = cache.get(key)
        if value is None:
            cache.add(key, 1, None)
            value = cache.get(key) or 1
        return int(value)
    except Exception:
        logger.warning("cache generation read failed", extra={"namespace": namespace})
        return 0


def bump_generation(namespace: str) -> int:
    key = _gen_key(namespace)
    try:
        cache.add(key, 1, None)
        return int(cache.incr(key))
    except Exception:
        logger.warning("cache generation bump failed", extra={"namespace": namespace})
        return 0


def versioned_key(namespace: str, *parts) -> str:
    suffix = ":".join(str(p) for p in parts)
    return f"{namespace}:v{generation(namespace)}:{suffix}"


def cache_get(key: str, default=None):
    try:
        value = cache.get(key, _MISS)
    except Exception:
        logger.warning("cache read failed", extra={"cache_key": key})
        return default
    return default if value is _MISS else value


def cache_set(key: str, value, timeout: int) -> None:
    try:
        cache.set(key, value, timeout)
    except Exception:
        logger.warning("cache write failed", extra={"cache_key": key})


def cache_delete(key: str) -> None:
    try:
        cache.delete(key)
    except Exception:
        logger.warning("cache delete failed", extra={"cache_key": key})
