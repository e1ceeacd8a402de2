"""Per-user notification preferences stored on ``User.notification_preferences``."""

from __future__ import annotations

import copy
from typing import Any

DIGEST_OPTIONS = ("immediate", "daily", "weekly", "none")

_TOGGLES = {
    "coc_received": True,
    "coc_verified": True,
    "coc_failed": True,
    "expiration_warning": True,
    "stop_work_risk": True,
    "communication_sent": True,
    "exception_updates": True,
}

DEFAULT_PREFERENCES: dict[str, Any] = {
    "email_digest": "immediate",
    "email_notifications": dict(_TOGGLES),
    "in_app_notifications": dict(_TOGGLES),
    "expiration_warning_days": 30,
}

# Notification types that share one toggle
_TOGGLE_FOR_TYPE = {
    "exception_created": "exception_updates",
    "exception_approved": "exception_updates",
    "exception_expired": "exception_updates",
}


def merged(stored: dict[str, Any] | None) -> dict[str, Any]:
    """Defaults overlaid with whatever the user has saved, one level deep."""
    prefs = copy.deepcopy(DEFAULT_PREFERENCES)
    for key, value in (stored or {}).items():
        if isinstance(prefs.get(key), dict) and isinstance(value, dict):
            prefs[key].update(value)
        elif key in prefs:
            prefs[key] = value
    return prefs


def wants_in_app(stored: dict[str, Any] | None, notification_type: str) -> bool:
    toggle = _TOGGLE_FOR_TYPE.get(notification_type, notification_type)
    if toggle not in _TOGGLES:
        return True
    return bool(merged(stored)["in_app_notifications"].get(toggle, True))
