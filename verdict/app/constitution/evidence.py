"""
Evidence helpers used by the constitution enforcer.

Evidence arrives as a JSON-shaped mapping from the observation
collaborator and is coerced into the typed Evidence struct. Coercion is
per category: a malformed category is discarded on its own and never
invalidates the rest of the evidence.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from verdict.app.canonical.serialization import canonical_json
from verdict.app.schemas.findings import Evidence

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Categories (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------

STRONG_CATEGORIES = ("navigation", "meaningful_dom", "feedback", "network")
WEAK_CATEGORIES = ("console", "blocked_writes", "files")

AMBIGUITY_BLOCKED_WRITE = "blocked_write_detected"
AMBIGUITY_CONSOLE_ONLY = "console_only"
AMBIGUITY_NETWORK_ONLY = "network_only"


# ---------------------------------------------------------------------------
# Substance
# ---------------------------------------------------------------------------


def is_substantive(value: Any) -> bool:
    """
    True iff ``value`` holds at least one non-default truthy leaf.

    False, zero, None, empty strings and empty containers are defaults.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if isinstance(value, Mapping):
        return any(is_substantive(v) for v in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) > 0
    if isinstance(value, str):
        return value.strip() != ""
    return bool(value)


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, (int, float)):
        return str(value)
    if is_substantive(value) and _is_plain_json(value):
        return canonical_json(value)
    return None


def _as_strings(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [
            item if isinstance(item, str) else canonical_json(item)
            for item in value
            if is_substantive(item) and _is_plain_json(item)
        ]
    text = _as_text(value)
    if text is not None:
        return [text]
    return ["true"] if value is True else []


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _flag(field: str) -> Callable[[Any], Dict[str, Any]]:
    def convert(value: Any) -> Dict[str, Any]:
        return {field: is_substantive(value)}

    return convert


def _text(field: str) -> Callable[[Any], Dict[str, Any]]:
    def convert(value: Any) -> Dict[str, Any]:
        text = _as_text(value)
        return {field: text} if text is not None else {}

    return convert


def _network_requests(value: Any) -> Dict[str, Any]:
    if _is_count(value):
        return {"request_count": value}
    requests = _as_strings(value) if not isinstance(value, bool) else []
    if requests:
        return {"requests": requests, "request_count": len(requests)}
    return {"activity": is_substantive(value)}


def _console_errors(value: Any) -> Dict[str, Any]:
    if _is_count(value):
        return {"error_count": value}
    errors = _as_strings(value) if not isinstance(value, bool) else []
    if errors:
        return {"errors": errors, "error_count": len(errors)}
    return {"error_count": int(is_substantive(value))}


class _FlatKey(NamedTuple):
    category: str
    ref: str
    convert: Callable[[Any], Any]


def _flat_keys() -> Dict[str, _FlatKey]:
    table: Dict[str, _FlatKey] = {}

    def add(names, category, ref, convert):
        for name in names:
            table[name] = _FlatKey(category, ref, convert)

    add(("beforeUrl", "before_url"), "navigation",
        "navigation.before_url", _text("before_url"))
    add(("afterUrl", "after_url"), "navigation",
        "navigation.after_url", _text("after_url"))
    add(("hasUrlChange", "has_url_change", "navigationChanged",
         "navigation_changed"), "navigation",
        "navigation.url_changed", _flag("url_changed"))

    add(("domChanged", "dom_changed", "hasDomChange", "has_dom_change",
         "meaningfulDomChange", "meaningful_dom_change"), "dom",
        "dom.dom_changed", _flag("dom_changed"))
    add(("domDiff", "dom_diff"), "dom",
        "dom.diff_summary", _text("diff_summary"))

    add(("feedbackSeen", "feedback_seen"), "feedback",
        "feedback.feedback_seen", _flag("feedback_seen"))
    add(("ariaLive", "aria_live"), "feedback",
        "feedback.aria_live", _flag("aria_live"))
    add(("statusMessage", "status_message"), "feedback",
        "feedback.status_message", _text("status_message"))
    add(("successMessage", "success_message"), "feedback",
        "feedback.success_message", _text("success_message"))

    add(("networkActivity", "network_activity", "correlatedNetworkActivity",
         "correlated_network_activity"), "network",
        "network", _flag("activity"))
    add(("networkRequests", "network_requests", "networkRequest",
         "network_request"), "network",
        "network", _network_requests)

    add(("consoleErrors", "console_errors", "consoleError",
         "console_error"), "console",
        "console", _console_errors)

    add(("blockedWrites", "blocked_writes", "blockedWrite",
         "blocked_write"), "blocked_writes",
        "blocked_writes", _as_strings)
    add(("files", "evidenceFiles", "evidence_files"), "files",
        "files", _as_strings)
    return table


FLAT_KEYS = MappingProxyType(_flat_keys())

_LIST_FIELDS = ("blocked_writes", "files")
_CATEGORY_FIELDS = ("navigation", "dom", "feedback", "network", "console")


def _merge_flat(target: Dict[str, Any], updates: Mapping) -> None:
    for field, value in updates.items():
        current = target.get(field)
        if isinstance(current, bool) and isinstance(value, bool):
            target[field] = current or value
        elif field not in target:
            target[field] = value


def _category_payload(nested: Any, flat: Optional[Dict[str, Any]]) -> Any:
    if not flat:
        return nested
    if not isinstance(nested, Mapping):
        return dict(flat)
    payload = dict(nested)
    for field, value in flat.items():
        if field not in payload and to_camel(field) not in payload:
            payload[field] = value
    return payload


def _is_plain_json(value: Any) -> bool:
    try:
        canonical_json(value)
    except (TypeError, ValueError):
        return False
    return True


def coerce_evidence(raw: Any) -> Evidence:
    """
    Build typed Evidence from a nested or flat evidence mapping.

    Flat signal keys such as ``beforeUrl`` or ``consoleErrors`` are folded
    into their category; nested category values win over flat ones.
    Substantive keys outside every category are kept under ``other``.
    """
    if isinstance(raw, Evidence):
        return raw
    if not isinstance(raw, Mapping):
        return Evidence()

    nested: Dict[str, Any] = {}
    flat: Dict[str, Dict[str, Any]] = {}
    lists: Dict[str, List[str]] = {}
    other: Dict[str, Any] = {}

    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        flat_key = FLAT_KEYS.get(key)
        if flat_key is not None:
            converted = flat_key.convert(value)
            if flat_key.category in _LIST_FIELDS:
                lists.setdefault(flat_key.category, []).extend(converted)
            else:
                _merge_flat(flat.setdefault(flat_key.category, {}), converted)
        elif key in _CATEGORY_FIELDS:
            nested[key] = value
        elif key == "other" and isinstance(value, Mapping):
            other.update(
                (k, v) for k, v in value.items() if isinstance(k, str)
            )
        elif is_substantive(value):
            other[key] = value

    accepted: Dict[str, Any] = dict(lists)
    for category in _CATEGORY_FIELDS:
        if category not in nested and category not in flat:
            continue
        payload = _category_payload(nested.get(category), flat.get(category))
        try:
            Evidence.model_validate({category: payload})
        except ValidationError:
            logger.debug("Discarding malformed evidence category %r", category)
            continue
        accepted[category] = payload

    kept_other = {}
    for key, value in other.items():
        if is_substantive(value) and _is_plain_json(value):
            kept_other[key] = value
        else:
            logger.debug("Discarding unserializable evidence signal %r", key)
    if kept_other:
        accepted["other"] = kept_other

    return Evidence.model_validate(accepted)


# ---------------------------------------------------------------------------
# Reference resolution
# ---------------------------------------------------------------------------


def _field_value(model: BaseModel, segment: str) -> Tuple[bool, Any]:
    for name, info in type(model).model_fields.items():
        if segment in (name, info.alias, to_camel(name)):
            return True, getattr(model, name)
    return False, None


def _ref_segments(ref: str) -> List[str]:
    head, _, rest = ref.partition(".")
    flat_key = FLAT_KEYS.get(head)
    if flat_key is not None:
        head = flat_key.ref
    segments = head.split(".")
    if rest:
        segments.extend(rest.split("."))
    return segments


def resolve_evidence_ref(evidence: Evidence, ref: Any) -> bool:
    """
    True when ``ref`` names a populated evidence path.

    Paths are dotted, accept snake_case or camelCase segments, and may
    index into lists: ``network``, ``network.failedUrls``, ``files.0``.
    Flat signal keys resolve to the category field they were folded into
    (``beforeUrl`` is ``navigation.beforeUrl``); any other top-level name
    is looked up under ``other``.
    """
    if not isinstance(ref, str) or not ref.strip():
        return False

    segments = _ref_segments(ref.strip())
    current: Any = evidence
    found, _ = _field_value(evidence, segments[0])
    if not found:
        current = evidence.other

    for segment in segments:
        if isinstance(current, BaseModel):
            found, current = _field_value(current, segment)
            if not found:
                return False
        elif isinstance(current, Mapping):
            if segment not in current:
                return False
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or int(segment) >= len(current):
                return False
            current = current[int(segment)]
        else:
            return False

    return is_substantive(current)


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


def classify_evidence(evidence: Evidence) -> Tuple[List[str], List[str]]:
    """
    Return (categories, ambiguity_reasons) for the given evidence.

    Categories list strong categories first, then weak ones, each in
    declaration order. Classification never affects status.
    """
    present = {
        "navigation": is_substantive(evidence.navigation),
        "meaningful_dom": is_substantive(evidence.dom),
        "feedback": is_substantive(evidence.feedback),
        "network": is_substantive(evidence.network),
        "console": is_substantive(evidence.console),
        "blocked_writes": bool(evidence.blocked_writes),
        "files": bool(evidence.files),
    }

    categories = [c for c in STRONG_CATEGORIES + WEAK_CATEGORIES if present[c]]
    strong = [c for c in STRONG_CATEGORIES if present[c]]

    ambiguity: List[str] = []
    if present["blocked_writes"]:
        ambiguity.append(AMBIGUITY_BLOCKED_WRITE)
    if present["console"] and not strong:
        ambiguity.append(AMBIGUITY_CONSOLE_ONLY)
    if strong == ["network"]:
        ambiguity.append(AMBIGUITY_NETWORK_ONLY)

    return categories, ambiguity
