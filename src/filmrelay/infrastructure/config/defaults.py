"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "filmrelay",
    "environment": "dev",
    "server": {
        "public_url": "http://127.0.0.1:7000",
    },
    "plugins": {
        "plugin_dir": "./plugins",
    },
    "http": {
        "timeout_seconds": 30.0,
        "user_agent": "filmrelay/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "sources": {
        "priority": ["purstream", "xalaflix", "frenchstream"],
        "timeout_seconds": 15.0,
        "max_concurrent": 5,
        "match_threshold": 0.7,
        "fallback_max_words": 3,
        "episode_tolerance": 1,
    },
    "proxy": {
        "timeout_seconds": 30.0,
        "chunk_size": 65_536,
        "referer": "https://xalaflix.io/",
        "origin": "https://xalaflix.io",
    },
    "metadata": {
        "base_url": "https://v3-cinemeta.strem.io",
    },
}
