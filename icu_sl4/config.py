"""
Configuration module for ICU SL4.

Centralizes all configuration with environment variable support and a
TTL cache for policy files read by the HTTP service.
"""

import os
import threading
import time
from typing import Any, Dict, Optional

from .hashing import document_hash

# ============================================================
# Environment Configuration
# ============================================================

ENV = os.getenv("ICU_SL4_ENV", "dev")  # dev|stage|prod

# Build / configuration identifiers bound into every proof pack
BINARY_HASH = os.getenv("ICU_SL4_BINARY_HASH", "blake3:demo-binary")
CONFIG_HASH = os.getenv("ICU_SL4_CONFIG_HASH", "")

# Paths
POLICY_PATH = os.getenv("ICU_SL4_POLICY_PATH", "policies/hypoxemia_acute.yaml")
LEDGER_PATH = os.getenv("ICU_SL4_LEDGER_PATH", "")

# Logging
LOG_LEVEL = os.getenv("ICU_SL4_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("ICU_SL4_LOG_JSON", "1").lower() in ("1", "true", "yes")

# HTTP
PORT = int(os.getenv("PORT", "8787"))

# Cache TTL (seconds)
CONFIG_CACHE_TTL = int(os.getenv("CONFIG_CACHE_TTL", "60"))


# ============================================================
# Cached Configuration Loaders
# ============================================================

class CachedConfig:
    """
    Thread-safe cached file loader.
    Reloads files periodically based on TTL.
    """

    def __init__(self, ttl_seconds: int = 60):
        self._cache: Dict[str, str] = {}
        self._timestamps: Dict[str, float] = {}
        self._lock = threading.RLock()
        self._ttl = ttl_seconds

    def _is_stale(self, key: str) -> bool:
        if key not in self._timestamps:
            return True
        return (time.time() - self._timestamps[key]) > self._ttl

    def get_text(self, path: str, force_reload: bool = False) -> str:
        """
        Load a text file with caching.
        Returns cached version if within TTL, otherwise reloads.
        """
        with self._lock:
            if not force_reload and path in self._cache and not self._is_stale(path):
                return self._cache[path]

            with open(path, "r", encoding="utf-8") as f:
                data = f.read()

            self._cache[path] = data
            self._timestamps[path] = time.time()
            return data


# Global cached config instance
_config_cache = CachedConfig(ttl_seconds=CONFIG_CACHE_TTL)


def load_policy_text_cached(path: Optional[str] = None) -> str:
    """Load the policy YAML text with caching (default: POLICY_PATH)."""
    return _config_cache.get_text(path or POLICY_PATH)


# ============================================================
# Configuration identity
# ============================================================

def config_snapshot() -> Dict[str, Any]:
    """The effective settings that influence a decision."""
    return {
        "env": ENV,
        "policy_path": POLICY_PATH,
        "sensitivity_bias": "ZFN",
    }


def effective_config_hash() -> str:
    """ICU_SL4_CONFIG_HASH when set, otherwise the hash of config_snapshot()."""
    if CONFIG_HASH:
        return CONFIG_HASH
    return document_hash(config_snapshot())
