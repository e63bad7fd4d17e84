"""Evaluates workflow conditions against a trigger payload. Pure: no I/O, no mutation.

Condition shapes (JSON objects):

- Comparison: {"field": "payload.status", "op": "eq", "value": "open"}
  ops: eq, ne, gt, gte, lt, lte, in, not_in
- Composition: {"all": [...]}, {"any": [...]}, {"not": {...}}
- Flat mapping (implicit AND of equalities): {"payload.status": "open", "source": "web"}

Field paths are dotted; a leading "payload." is optional. Any comparison
against a field absent from the payload is False (never raises), so a
malformed event cannot make a workflow fire.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from automation.domain.exceptions import ValidationException

DEFAULT_MAX_DEPTH = 10

_PAYLOAD_PREFIX = "payload."
_COMPOSITE_KEYS = frozenset({"all", "any", "not"})
_EQUALITY_OPS = frozenset({"eq", "ne"})
_ORDERING_OPS = frozenset({"gt", "gte", "lt", "lte"})
_MEMBERSHIP_OPS = frozenset({"in", "not_in"})
_ALL_OPS = _EQUALITY_OPS | _ORDERING_OPS | _MEMBERSHIP_OPS

_MISSING = object()


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _resolve_field(payload: Mapping[str, Any], path: str) -> Any:
    """Return the value at a dotted path, or _MISSING if any segment is absent."""
    if path.startswith(_PAYLOAD_PREFIX):
        path = path[len(_PAYLOAD_PREFIX) :]
    current: Any = payload
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def _strict_equal(a: Any, b: Any) -> bool:
    """JSON equality: true and 1 differ, 1 and 1.0 match."""
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return False
    if op == "eq":
        return _strict_equal(actual, expected)
    if op == "ne":
        return not _strict_equal(actual, expected)
    if op in _ORDERING_OPS:
        if not (_is_number(actual) and _is_number(expected)):
            return False
        if op == "gt":
            return actual > expected
        if op == "gte":
            return actual >= expected
        if op == "lt":
            return actual < expected
        return actual <= expected
    found = any(_strict_equal(actual, item) for item in expected)
    return found if op == "in" else not found


def _validate_node(node: Any, depth: int, max_depth: int, path: str) -> None:
    if depth > max_depth:
        raise ValidationException(
            f"Condition nesting exceeds maximum depth of {max_depth}", field=path
        )
    if not isinstance(node, Mapping):
        raise ValidationException("Condition node must be an object", field=path)
    if not node:
        raise ValidationException("Condition node must not be empty", field=path)

    composite = _COMPOSITE_KEYS & node.keys()
    if composite:
        if len(node) != 1:
            raise ValidationException(
                "Composite condition must have exactly one of 'all', 'any', 'not'",
                field=path,
            )
        key = next(iter(composite))
        child = node[key]
        if key == "not":
            _validate_node(child, depth + 1, max_depth, f"{path}.not")
            return
        if not isinstance(child, list) or not child:
            raise ValidationException(
                f"'{key}' must be a non-empty list of conditions", field=f"{path}.{key}"
            )
        for i, item in enumerate(child):
            _validate_node(item, depth + 1, max_depth, f"{path}.{key}[{i}]")
        return

    if "field" in node:
        _validate_comparison(node, path)
        return

    # Flat mapping: every key is a field path compared for equality.
    for key in node:
        if not isinstance(key, str) or not key.strip():
            raise ValidationException("Condition field path must be a non-empty string", field=path)


def _validate_comparison(node: Mapping[str, Any], path: str) -> None:
    unknown = set(node.keys()) - {"field", "op", "value"}
    if unknown:
        raise ValidationException(
            f"Unknown comparison key(s): {', '.join(sorted(unknown))}", field=path
        )
    field = node.get("field")
    if not isinstance(field, str) or not field.strip():
        raise ValidationException("'field' must be a non-empty string", field=f"{path}.field")
    op = node.get("op")
    if op not in _ALL_OPS:
        raise ValidationException(
            f"'op' must be one of {', '.join(sorted(_ALL_OPS))}", field=f"{path}.op"
        )
    if "value" not in node:
        raise ValidationException("Comparison requires 'value'", field=f"{path}.value")
    value = node["value"]
    if op in _ORDERING_OPS and not _is_number(value):
        raise ValidationException(
            f"'{op}' requires a numeric value", field=f"{path}.value"
        )
    if op in _MEMBERSHIP_OPS and not isinstance(value, list):
        raise ValidationException(f"'{op}' requires a list value", field=f"{path}.value")


def _evaluate_node(node: Mapping[str, Any], payload: Mapping[str, Any]) -> bool:
    if "all" in node:
        return all(_evaluate_node(child, payload) for child in node["all"])
    if "any" in node:
        return any(_evaluate_node(child, payload) for child in node["any"])
    if "not" in node:
        return not _evaluate_node(node["not"], payload)
    if "field" in node:
        return _compare(node["op"], _resolve_field(payload, node["field"]), node["value"])
    return all(
        _compare("eq", _resolve_field(payload, key), expected)
        for key, expected in node.items()
    )


def validate_condition(
    condition: Mapping[str, Any] | None, max_depth: int = DEFAULT_MAX_DEPTH
) -> None:
    """Raise ValidationException if condition is malformed or nested deeper than max_depth.

    None or {} is valid (unconditional).
    """
    if not condition:
        return
    _validate_node(condition, 1, max_depth, "condition")


def evaluate(
    condition: Mapping[str, Any] | None,
    payload: Mapping[str, Any] | None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> bool:
    """Return whether payload satisfies condition. Empty condition is always True.

    Validates first, so evaluation is bounded by max_depth; raises
    ValidationException for malformed conditions.
    """
    if not condition:
        return True
    validate_condition(condition, max_depth)
    return _evaluate_node(condition, payload or {})


class ConditionEvaluator:
    """Condition evaluator bound to a configured depth limit."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth

    def validate(self, condition: Mapping[str, Any] | None) -> None:
        validate_condition(condition, self.max_depth)

    def evaluate(
        self, condition: Mapping[str, Any] | None, payload: Mapping[str, Any] | None
    ) -> bool:
        return evaluate(condition, payload, self.max_depth)
