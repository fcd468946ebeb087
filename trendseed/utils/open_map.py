"""
Typed accessors for open-ended JSON maps.

Event ``context`` documents, snapshot ``components``, and model-feed
``components`` are free-form string-keyed maps whose keys evolve over time.
They stay plain ``dict`` objects; these helpers read values out of them
without trusting their shape.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


def first_number(data: Optional[Mapping[str, Any]], *keys: str) -> Optional[float]:
    """Read a finite number from the first of ``keys`` present in ``data``.

    Only the first present key is consulted, even when its value is null or
    unusable. Numeric strings are parsed; booleans are not numbers here.
    """
    if not data:
        return None
    for key in keys:
        if key in data:
            return _as_finite(data[key])
    return None


def _as_finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        return None
    return number if math.isfinite(number) else None


def load_json_object(text: Optional[str]) -> dict[str, Any]:
    """Decode a JSON column that should hold an object.

    Malformed or non-object payloads decode to ``{}``.
    """
    if not text:
        return {}
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed JSON object column: %.80r", text)
        return {}
    return value if isinstance(value, dict) else {}


def load_json_list(text: Optional[str]) -> list[Any]:
    if not text:
        return []
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed JSON list column: %.80r", text)
        return []
    return value if isinstance(value, list) else []

