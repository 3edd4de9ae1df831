"""
Structural unwrapping of producer payloads.

Neither producer is bound to a schema. The extraction service may send a flat
object, an object nested under some wrapper key, or a JSON string with prose
around it; the lender-matching webhook may send a bare array, an envelope, or
an envelope whose `output` is itself a JSON string. This module is the only
place that probes raw JSON: everything it hands back is already narrowed to
either a flat bag of scalars or a plain list.

Two modes, neither of which raises:
  - unwrap_field_bag()   → dict[str, str | int | float | bool]
  - unwrap_match_list()  → list[Any]
Malformed input degrades to an empty result.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

logger = logging.getLogger(__name__)

Scalar = str | int | float | bool
FieldBag = dict[str, Scalar]

# Checked in this order; the first one holding an object replaces the outer payload.
FIELD_BAG_WRAPPERS: tuple[str, ...] = (
    "extractedData",
    "data",
    "fields",
    "formData",
    "values",
)

# Checked in this order inside the match-list envelope (and one level below).
MATCH_LIST_KEYS: tuple[str, ...] = (
    "matches",
    "data",
    "result",
    "payload",
    "ranked_matches",
)

_OPENERS = {"{": "}", "[": "]"}


# ─── Narrowing Predicates ────────────────────────────────────────────


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def is_number(value: Any) -> bool:
    # bool is an int subclass in Python; JSON keeps them apart.
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_scalar(value: Any) -> bool:
    return is_string(value) or is_number(value) or is_boolean(value)


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def is_array(value: Any) -> bool:
    return isinstance(value, list)


def scalar_text(value: Any) -> str | None:
    """String form of a JSON scalar, or None for anything else.

    Booleans render as JSON does ("true"/"false"); integral floats drop the
    trailing ".0" so 12000.0 and 12000 produce the same text.
    """
    if is_string(value):
        return value
    if is_boolean(value):
        return "true" if value else "false"
    if is_number(value):
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            if value.is_integer():
                return str(int(value))
        return str(value)
    return None


# ─── JSON Preamble ───────────────────────────────────────────────────


def parse_payload(payload: Any) -> Any:
    """Turn a raw payload into parsed JSON, or None if nothing usable is found.

    Strings (and bytes) are parsed as JSON. If that fails, the first balanced
    {...} or [...] block inside the text is parsed instead, which recovers
    JSON wrapped in prose or markdown fences. Already-parsed values pass
    through unchanged.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Payload is not valid UTF-8; treating as empty")
            return None

    if not is_string(payload):
        return payload

    try:
        return json.loads(payload)
    except RecursionError:
        logger.warning("Payload nests too deeply to decode; treating as empty")
        return None
    except ValueError:
        pass

    block = _first_balanced_block(payload)
    if block is None:
        logger.info("No JSON object or array found in text payload")
        return None

    try:
        return json.loads(block)
    except RecursionError:
        logger.warning("Embedded JSON block nests too deeply to decode")
        return None
    except ValueError:
        logger.info("Embedded JSON block could not be parsed")
        return None


def _first_balanced_block(text: str) -> str | None:
    """Return the first balanced {...} or [...] substring of *text*.

    Brackets inside JSON string literals are ignored. A mismatched closer
    means the first block is not balanced, and nothing is returned.
    """
    start = next((i for i, ch in enumerate(text) if ch in _OPENERS), None)
    if start is None:
        return None

    stack: list[str] = []
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return text[start : i + 1]

    return None


# ─── Field-Bag Mode ──────────────────────────────────────────────────


def unwrap_field_bag(payload: Any) -> FieldBag:
    """Locate and flatten the field bag inside an extraction payload.

    Every scalar leaf is registered twice: under its dotted path
    ("contactInfo.email") and under its bare key ("email"). When a bare key
    occurs at several depths, the one visited last wins. Arrays, nulls and
    empty objects contribute nothing.
    """
    parsed = parse_payload(payload)
    if not is_object(parsed):
        return {}

    source = parsed
    for wrapper in FIELD_BAG_WRAPPERS:
        if is_object(parsed.get(wrapper)):
            logger.info("Found field data under '%s'", wrapper)
            source = parsed[wrapper]
            break

    bag: FieldBag = {}
    _flatten(source, "", bag)
    return bag


def _flatten(obj: dict[str, Any], prefix: str, bag: FieldBag) -> None:
    # Depth-first in key order with an explicit stack; nesting depth is
    # producer-controlled.
    stack = [(prefix, iter(obj.items()))]
    while stack:
        parent, items = stack[-1]
        entry = next(items, None)
        if entry is None:
            stack.pop()
            continue
        key = str(entry[0])
        value = entry[1]
        path = f"{parent}.{key}" if parent else key
        if is_object(value):
            stack.append((path, iter(value.items())))
        elif is_scalar(value):
            bag[path] = value
            bag[key] = value


# ─── Match-List Mode ─────────────────────────────────────────────────


def unwrap_match_list(payload: Any) -> list[Any]:
    """Find the raw lender-match array inside a webhook payload.

    Accepted shapes include a bare array, {"matches": [...]},
    {"ranked_matches": [...]}, {"output": "<json string>"} wrapping any of
    those, {"data": {"matches": [...]}}, and [{"ranked_matches": [...]}].
    Returns [] when no array can be found.
    """
    try:
        found = _search_matches(parse_payload(payload))
    except RecursionError:
        logger.warning("Lender-matching payload nests too deeply; treating as empty")
        return []
    if found is None:
        logger.info("No match array found in lender-matching payload")
        return []
    return found


def _search_matches(container: Any) -> list[Any] | None:
    if is_array(container):
        return _unwrap_ranked(container)
    if not is_object(container):
        return None

    output = container.get("output")
    if is_string(output):
        found = _search_matches(parse_payload(output))
        if found is not None:
            return found
    elif is_object(output) or is_array(output):
        found = _search_matches(output)
        if found is not None:
            return found

    for key in MATCH_LIST_KEYS:
        value = container.get(key)
        if is_array(value):
            return _unwrap_ranked(value)
        if is_object(value):
            for inner_key in MATCH_LIST_KEYS:
                inner = value.get(inner_key)
                if is_array(inner):
                    return _unwrap_ranked(inner)

    return None


def _unwrap_ranked(items: list[Any]) -> list[Any]:
    """Collapse [{"ranked_matches": M}] to M, repeatedly."""
    while (
        len(items) == 1
        and is_object(items[0])
        and is_array(items[0].get("ranked_matches"))
    ):
        items = items[0]["ranked_matches"]
    return items
