"""Visual presets a shop can pick for its public catalog."""
from typing import Any, Dict, Optional, Tuple

DEFAULT_THEME = "classic"

THEMES: Dict[str, Dict[str, Any]] = {
    "classic": {
        "name": "Original",
        "bg": "bg-gray-50",
        "header": "bg-gradient-to-r from-blue-600 to-purple-600 border-b-0",
        "text": "text-white",
        "snow": False,
        "leaves": False,
    },
    "dark": {
        "name": "Oscuro",
        "bg": "bg-gray-900",
        "header": "bg-gradient-to-r from-gray-800 to-black border-b border-gray-700",
        "text": "text-gray-100",
        "snow": False,
        "leaves": False,
    },
    "christmas": {
        "name": "Navidad 🎄",
        "bg": "bg-red-50",
        "header": "bg-gradient-to-b from-red-600 to-red-800 border-b-4 border-green-700",
        "text": "text-white",
        "snow": True,
        "leaves": False,
    },
    "autumn": {
        "name": "Otoño 🍂",
        "bg": "bg-orange-50",
        "header": "bg-gradient-to-r from-orange-500 to-amber-700 border-b-0",
        "text": "text-white",
        "snow": False,
        "leaves": True,
    },
}


def is_known_theme(key: Optional[str]) -> bool:
    return (key or "").strip().lower() in THEMES


def resolve_theme(key: Optional[str]) -> Tuple[str, Dict[str, Any]]:
    """Return (key, preset), falling back to the default preset for unknown keys."""
    k = (key or "").strip().lower()
    if k not in THEMES:
        k = DEFAULT_THEME
    return k, dict(THEMES[k])


def list_themes() -> list[dict]:
    return [{"key": k, **v} for k, v in THEMES.items()]
