"""Simple runtime configuration.

Values come from `_DEFAULTS`, overridden section by section by a JSON file:
the path in `REPORTER_CONFIG` if set, else `reporter/config.json`. Capture,
enrichment and the HTTP layer read values from this module.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_DEFAULTS: Dict[str, Any] = {
    'capture_ports': [14235, 8888, 12345],
    'interface': None,
    'snaplen': 1600,
    'enrich': {
        'port': 14235,
        'scheme': 'http',
        'path': '/cgi-bin/stats.cgi',
        'username': 'root',
        'password': 'root',
        'timeout': 5.0,
    },
    'broadcast': {'delivery_timeout': 1.0, 'queue_size': 64, 'keepalive': 15.0},
    'http': {'host': '0.0.0.0', 'port': 7070},
}

_cfg: Dict[str, Any] = {}

_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'config.json'))


def config_path() -> str:
    return os.environ.get('REPORTER_CONFIG') or _path


def load(path: Optional[str] = None):
    global _cfg
    path = path or config_path()
    _cfg = dict(_DEFAULTS)
    if not os.path.exists(path):
        return
    try:
        with open(path, 'r') as f:
            overrides = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config %s: %s", path, e)
        return
    if not isinstance(overrides, dict):
        logger.warning("Ignoring config %s: top level is not an object", path)
        return
    for section, value in overrides.items():
        default = _DEFAULTS.get(section)
        if isinstance(default, dict) and isinstance(value, dict):
            merged = dict(default)
            merged.update(value)
            _cfg[section] = merged
        else:
            _cfg[section] = value


def get(section: str, default=None):
    return _cfg.get(section, _DEFAULTS.get(section, default))


# initialize
load()
