"""Avatar presets: users pick an icon + color combination (no photo uploads)."""

from typing import Dict, List

AVATAR_COLORS: List[Dict[str, str]] = [
    {"id": "red", "label_key": "red", "solid": "#d0212a"},
    {"id": "blue", "label_key": "blue", "solid": "#2563eb"},
    {"id": "purple", "label_key": "purple", "solid": "#7c3aed"},
    {"id": "green", "label_key": "green", "solid": "#16a34a"},
    {"id": "orange", "label_key": "orange", "solid": "#ea580c"},
    {"id": "pink", "label_key": "pink", "solid": "#ec4899"},
    {"id": "teal", "label_key": "turquoise", "solid": "#14b8a6"},
    {"id": "indigo", "label_key": "indigo", "solid": "#6366f1"},
    {"id": "amber", "label_key": "amber", "solid": "#f59e0b"},
    {"id": "cyan", "label_key": "cyan", "solid": "#06b6d4"},
    {"id": "rose", "label_key": "rose", "solid": "#f43f5e"},
    {"id": "slate", "label_key": "slate", "solid": "#64748b"},
]

AVATAR_ICONS: List[Dict[str, str]] = [
    # People
    {"id": "user", "label_key": "person", "category": "people"},
    {"id": "smile", "label_key": "smile", "category": "people"},
    {"id": "ghost", "label_key": "ghost", "category": "people"},
    {"id": "baby", "label_key": "baby", "category": "people"},
    # Animals
    {"id": "cat", "label_key": "cat", "category": "animals"},
    {"id": "dog", "label_key": "dog", "category": "animals"},
    {"id": "bird", "label_key": "bird", "category": "animals"},
    {"id": "fish", "label_key": "fish", "category": "animals"},
    {"id": "rabbit", "label_key": "rabbit", "category": "animals"},
    {"id": "squirrel", "label_key": "squirrel", "category": "animals"},
    # Objects
    {"id": "gamepad-2", "label_key": "gamepad", "category": "objects"},
    {"id": "music", "label_key": "music", "category": "objects"},
    {"id": "camera", "label_key": "camera", "category": "objects"},
    {"id": "palette", "label_key": "palette", "category": "objects"},
    {"id": "rocket", "label_key": "rocket", "category": "objects"},
    {"id": "coffee", "label_key": "coffee", "category": "objects"},
    # Symbols
    {"id": "star", "label_key": "star", "category": "symbols"},
    {"id": "heart", "label_key": "heart", "category": "symbols"},
    {"id": "zap", "label_key": "lightning", "category": "symbols"},
    {"id": "crown", "label_key": "crown", "category": "symbols"},
    {"id": "diamond", "label_key": "diamond", "category": "symbols"},
    {"id": "flame", "label_key": "flame", "category": "symbols"},
    {"id": "shield", "label_key": "shield", "category": "symbols"},
    {"id": "sparkles", "label_key": "sparkles", "category": "symbols"},
]

_COLOR_IDS = {c["id"] for c in AVATAR_COLORS}
_ICON_IDS = {i["id"] for i in AVATAR_ICONS}


def is_valid_avatar_icon(icon_id: str) -> bool:
    return icon_id in _ICON_IDS


def is_valid_avatar_color(color_id: str) -> bool:
    return color_id in _COLOR_IDS
