"""
Utilities for loading rate sheet column configuration.
"""
from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "rate_sheet_columns.yaml"

DEFAULT_COLUMNS: Dict[str, List[str]] = {
    "origin": ["origin", "from"],
    "destination": ["destination", "to", "dest"],
    "minimum_weight": ["minimum_weight", "min_weight"],
    "minimum_price": ["minimum_price", "min_price"],
    "additional_price_per_kg": ["additional_price_per_kg", "per_kg"],
    "shipping_plan": ["shipping_plan", "plan"],
}


def slugify(value: Optional[str]) -> str:
    if not value:
        return ""
    return re.sub(r"[^a-z0-9]+", "", str(value).lower())


@lru_cache()
def load_mapping_config() -> Dict[str, Any]:
    if not CONFIG_PATH.exists():
        return {}
    with open(CONFIG_PATH, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def get_rate_column_aliases() -> Dict[str, List[str]]:
    """Field -> accepted column headers, config entries extending the defaults."""
    aliases = {key: list(values) for key, values in DEFAULT_COLUMNS.items()}
    configured = load_mapping_config().get("rate_sheet", {}).get("columns", {})
    for field_name, names in configured.items():
        aliases.setdefault(field_name, [])
        for name in names or []:
            if name not in aliases[field_name]:
                aliases[field_name].append(name)
    return aliases


def resolve_rate_columns(columns: List[str]) -> Dict[str, str]:
    """Map each rate field to the first sheet column whose slug matches an alias."""
    by_slug = {slugify(column): column for column in columns}
    resolved: Dict[str, str] = {}
    for field_name, names in get_rate_column_aliases().items():
        for name in names:
            column = by_slug.get(slugify(name))
            if column is not None:
                resolved[field_name] = column
                break
    return resolved
