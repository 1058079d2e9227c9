"""Layering of config mappings: system, user, project, then environment.

A layer only says what it sets. Sections (nested mappings) combine key by
key, any other value wins outright, and an explicit ``None`` means "not set
here" so a lower layer keeps its value. Inputs are never modified.
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import reduce
from typing import Any


def _overlay(lower: Any, upper: Any) -> Any:
    if upper is None:
        return lower
    if isinstance(lower, Mapping) and isinstance(upper, Mapping):
        return deep_merge(lower, upper)
    return upper


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """New mapping with ``override`` laid over ``base``."""
    keys = list(base) + [key for key in override if key not in base]
    merged = {key: _overlay(base.get(key), override.get(key)) for key in keys}
    # A key only present in override as None stays absent
    return {
        key: value
        for key, value in merged.items()
        if key in base or value is not None
    }


def merge_configs(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Overlay each layer on the ones before it; empty layers are skipped."""
    return reduce(deep_merge, (layer for layer in layers if layer), {})
