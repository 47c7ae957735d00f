"""Malformed-output repair for provider responses.

Providers are asked for JSON and usually return it. When they don't, the
response goes through progressively more aggressive recovery tiers:

    1. strict          json.loads on the raw text
    2. code_fence      strip ``` fences, then json.loads
    3. syntax_repair   trailing commas, missing commas between objects,
                       doubled quotes, strings split across lines
    4. list_isolation  cut out the record list by bracket matching (closing
                       a truncated list with json_repair) and re-wrap it
    5. field_scavenge  regex out individual fields into best-effort records

Each tier is a standalone pure function so it can be tested and measured on
its own. ``repair_response`` never raises: when every tier fails it returns
an empty list with tier ``failed``. The tier that succeeded is logged so
regressions in upstream model output show up in the logs.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from json_repair import repair_json

logger = logging.getLogger(__name__)

DEFAULT_LIST_KEY = "reservations"


class RepairTier(str, Enum):
    STRICT = "strict"
    CODE_FENCE = "code_fence"
    SYNTAX_REPAIR = "syntax_repair"
    LIST_ISOLATION = "list_isolation"
    FIELD_SCAVENGE = "field_scavenge"
    FAILED = "failed"


@dataclass(frozen=True)
class RepairOutcome:
    """Recovered structure and the tier that produced it."""

    value: Any
    tier: RepairTier

    @property
    def recovered(self) -> bool:
        return self.tier != RepairTier.FAILED


# =============================================================================
# Tier 1: strict parse
# =============================================================================


def parse_strict(text: str) -> dict | list | None:
    """json.loads, accepting only objects and arrays."""
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, (dict, list)) else None


# =============================================================================
# Tier 2: code fences
# =============================================================================

_FENCED = re.compile(r"```[a-zA-Z]*[ \t]*\n?(.*?)```", re.DOTALL)
_OPEN_FENCE = re.compile(r"^\s*```[a-zA-Z]*[ \t]*\n?")


def strip_code_fences(text: str) -> str | None:
    """Return the fenced content, or None when the text has no fence.

    An opening fence without a closing one (truncated output) is stripped too.
    """
    m = _FENCED.search(text)
    if m:
        return m.group(1).strip()
    if _OPEN_FENCE.match(text):
        return _OPEN_FENCE.sub("", text, count=1).strip()
    return None


# =============================================================================
# Tier 3: syntax repairs
# =============================================================================

_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_ADJACENT_OBJECTS = re.compile(r"}\s*{")
_DOUBLED_QUOTE = re.compile(r'""(?=\w)|(?<=\w)""')


def remove_trailing_commas(text: str) -> str:
    """``{"a": 1,}`` -> ``{"a": 1}``; ``[{...},]`` -> ``[{...}]``."""
    return _TRAILING_COMMA.sub(r"\1", text)


def insert_missing_commas(text: str) -> str:
    """``} {`` -> ``},{`` between adjacent objects."""
    return _ADJACENT_OBJECTS.sub("},{", text)


def collapse_doubled_quotes(text: str) -> str:
    """``""Camila""`` -> ``"Camila"``. Empty strings (``""``) are kept."""
    return _DOUBLED_QUOTE.sub('"', text)


def join_split_strings(text: str) -> str:
    """Join string values broken across raw newlines.

    Scans with string/escape tracking; a newline inside a string literal
    and the indentation after it become a single space.
    """
    out: list[str] = []
    in_string = False
    escaped = False
    skip_ws = False
    for ch in text:
        if skip_ws:
            if ch in " \t\r\n":
                continue
            skip_ws = False
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch in "\r\n":
                if out and out[-1] != " ":
                    out.append(" ")
                skip_ws = True
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


SYNTAX_REPAIRS = (
    remove_trailing_commas,
    insert_missing_commas,
    collapse_doubled_quotes,
    join_split_strings,
)
"""Applied together, in this order, before the tier-3 parse."""


def apply_syntax_repairs(text: str) -> str:
    for repair in SYNTAX_REPAIRS:
        text = repair(text)
    return text


# =============================================================================
# Tier 4: list isolation
# =============================================================================


def _matching_bracket(text: str, start: int) -> int | None:
    """Index of the bracket closing the one at ``start``, string-aware.

    Returns None when the text ends first (truncated output).
    """
    opener = text[start]
    closer = "]" if opener == "[" else "}"
    depth = 0
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
        elif ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
    return None


def _parse_fragment(fragment: str) -> dict | list | None:
    """Strict, then syntax repairs, then json_repair for truncation."""
    value = parse_strict(fragment)
    if value is not None:
        return value
    value = parse_strict(apply_syntax_repairs(fragment))
    if value is not None:
        return value
    try:
        value = repair_json(fragment, return_objects=True)
    except (ValueError, TypeError, IndexError, RecursionError) as e:
        logger.debug(f"json_repair failed on fragment: {e}")
        return None
    if isinstance(value, (dict, list)) and value:
        return value
    return None


def _slice_from(text: str, start: int) -> str:
    end = _matching_bracket(text, start)
    return text[start:] if end is None else text[start:end + 1]


def isolate_record_list(text: str, list_key: str = DEFAULT_LIST_KEY) -> dict | None:
    """Cut out the record list and wrap it as ``{list_key: [...]}``.

    Looks for ``"<list_key>": [`` first, then for the outermost array, then
    for the outermost object. A list cut off by truncation runs to the end
    of the text and is closed by json_repair.
    """
    key_match = re.search(rf'"{re.escape(list_key)}"\s*:\s*\[', text)
    if key_match:
        fragment = _slice_from(text, key_match.end() - 1)
        value = _parse_fragment(fragment)
        if isinstance(value, list):
            return {list_key: value}

    array_start = text.find("[")
    if array_start >= 0:
        value = _parse_fragment(_slice_from(text, array_start))
        if isinstance(value, list) and any(isinstance(v, dict) for v in value):
            return {list_key: value}

    object_start = text.find("{")
    if object_start >= 0:
        value = _parse_fragment(_slice_from(text, object_start))
        if isinstance(value, dict):
            if isinstance(value.get(list_key), list):
                return value
            return {list_key: [value]}

    return None


# =============================================================================
# Tier 5: field scavenging
# =============================================================================

_SCAVENGE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "guestName": (
        re.compile(r'"?(?:guestName|guest_name)"?\s*[:=]\s*"([^"\n]+)"'),
        re.compile(r"(?im)^[\s*\-]*(?:guest name|guest|nome do h[oó]spede|h[oó]spede|nome)\s*:\s*(.+?)\s*$"),
    ),
    "propertyName": (
        re.compile(r'"?(?:propertyName|property_name)"?\s*[:=]\s*"([^"\n]+)"'),
        re.compile(r"(?im)^[\s*\-]*(?:property|propriedade|alojamento)\s*:\s*(.+?)\s*$"),
    ),
    "checkInDate": (
        re.compile(r'"?(?:checkInDate|check_in_date|checkIn)"?\s*[:=]\s*"([^"\n]+)"'),
        re.compile(r"(?im)^[\s*\-]*(?:check-?in(?: date)?|data (?:de )?entrada)\s*:\s*(.+?)\s*$"),
    ),
    "checkOutDate": (
        re.compile(r'"?(?:checkOutDate|check_out_date|checkOut)"?\s*[:=]\s*"([^"\n]+)"'),
        re.compile(r"(?im)^[\s*\-]*(?:check-?out(?: date)?|data (?:de )?sa[ií]da)\s*:\s*(.+?)\s*$"),
    ),
}


def scavenge_fields(text: str, list_key: str = DEFAULT_LIST_KEY) -> dict | None:
    """Assemble records from individually matched fields.

    The n-th match of each field goes into the n-th record. Fields that are
    not found are omitted, never guessed.
    """
    found: dict[str, list[str]] = {}
    for name, patterns in _SCAVENGE_PATTERNS.items():
        for pattern in patterns:
            values = [v.strip() for v in pattern.findall(text) if v.strip()]
            if values:
                found[name] = values
                break

    if not found:
        return None

    count = max(len(values) for values in found.values())
    records = []
    for i in range(count):
        record = {name: values[i] for name, values in found.items() if i < len(values)}
        records.append(record)
    return {list_key: records}


# =============================================================================
# Entry point
# =============================================================================


def repair_response(raw_text: str | None, list_key: str = DEFAULT_LIST_KEY) -> RepairOutcome:
    """Recover structured data from a provider response. Never raises.

    Args:
        raw_text: Raw response text (None is treated as empty).
        list_key: Envelope key of the record list.

    Returns:
        RepairOutcome. ``value`` is ``[]`` with tier ``failed`` when nothing
        could be recovered.
    """
    text = raw_text or ""
    try:
        outcome = _run_tiers(text, list_key)
    except RecursionError:
        logger.warning("Response repair hit recursion limit, giving up")
        outcome = RepairOutcome(value=[], tier=RepairTier.FAILED)

    if outcome.tier == RepairTier.FAILED:
        logger.warning(f"Response repair failed at every tier (len={len(text)})")
    elif outcome.tier == RepairTier.STRICT:
        logger.debug("Response parsed strictly")
    else:
        logger.info(f"Response recovered at tier '{outcome.tier.value}'")
    return outcome


def _run_tiers(text: str, list_key: str) -> RepairOutcome:
    value = parse_strict(text)
    if value is not None:
        return RepairOutcome(value=value, tier=RepairTier.STRICT)

    unfenced = strip_code_fences(text)
    if unfenced is not None:
        value = parse_strict(unfenced)
        if value is not None:
            return RepairOutcome(value=value, tier=RepairTier.CODE_FENCE)

    working = unfenced if unfenced is not None else text
    value = parse_strict(apply_syntax_repairs(working))
    if value is not None:
        return RepairOutcome(value=value, tier=RepairTier.SYNTAX_REPAIR)

    value = isolate_record_list(working, list_key)
    if value is not None:
        return RepairOutcome(value=value, tier=RepairTier.LIST_ISOLATION)

    value = scavenge_fields(text, list_key)
    if value is not None:
        return RepairOutcome(value=value, tier=RepairTier.FIELD_SCAVENGE)

    return RepairOutcome(value=[], tier=RepairTier.FAILED)


def coerce_records(value: Any, list_key: str = DEFAULT_LIST_KEY) -> list[dict]:
    """Turn any repaired value into a list of record dicts.

    Accepts ``{list_key: [...]}``, a bare list, or a single record object.
    Non-dict items are dropped.
    """
    if isinstance(value, dict):
        inner = value.get(list_key)
        if isinstance(inner, list):
            return [r for r in inner if isinstance(r, dict)]
        if isinstance(inner, dict):
            return [inner]
        return [value] if value and list_key not in value else []
    if isinstance(value, list):
        return [r for r in value if isinstance(r, dict)]
    return []
