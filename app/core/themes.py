from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple, Union


@dataclass(frozen=True)
class AreaStrategy:
    """Nearby search, one call per place type, tried in order."""
    categories: Tuple[str, ...]
    kind: Literal["area"] = "area"


@dataclass(frozen=True)
class KeywordStrategy:
    """Free-text search, one call per phrase, tried in order."""
    phrases: Tuple[str, ...]
    kind: Literal["keyword"] = "keyword"


Strategy = Union[AreaStrategy, KeywordStrategy]


# Theme key → Places search strategy.
# Keyword themes cover things Places has no type for (trailheads, waterfalls).
THEMES: Dict[str, Strategy] = {
    "hikes": KeywordStrategy(phrases=("trailhead", "hiking area", "scenic trail")),
    "waterfalls": KeywordStrategy(phrases=("waterfall",)),
    "lakes": KeywordStrategy(phrases=("lake beach", "lakeside viewpoint")),
    "cafes": AreaStrategy(categories=("cafe", "bakery")),
    "viewpoints": KeywordStrategy(phrases=("scenic viewpoint", "lookout")),
    "parks": AreaStrategy(categories=("park",)),
    "food": AreaStrategy(categories=("restaurant",)),
    "museums": AreaStrategy(categories=("museum",)),
}


def normalize_theme_key(key: str) -> str:
    return (key or "").strip().lower()


def resolve_theme(key: str) -> Optional[Strategy]:
    """Strategy for a theme key, or None when the key is unknown."""
    return THEMES.get(normalize_theme_key(key))


def parse_theme_list(raw: str) -> list[str]:
    """'hikes, Cafes,,hikes' → ['hikes', 'cafes'] (first occurrence kept)."""
    out: list[str] = []
    for part in (raw or "").split(","):
        key = normalize_theme_key(part)
        if key and key not in out:
            out.append(key)
    return out
