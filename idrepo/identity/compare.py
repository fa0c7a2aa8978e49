"""
Lenient structural comparison of payload trees.

``compare(expected, actual)`` walks the submitted tree (``expected``) against
the stored tree (``actual``). Keys present only in the stored tree are
tolerated and array order is ignored. Differences fall into three classes:

- missing field: a path present in the submitted tree and absent in the
  stored one (``expected`` holds the submitted value),
- failing field: same path, different value or kind,
- missing value: arrays whose elements cannot be paired field by field
  (length mismatch, unmatched stored element, no usable unique key).

Arrays of mappings are paired through a unique key when one exists; the
pairing shows up in paths as a ``Where`` segment and renders as
``$.names[?(@.language=='eng')]``. Locale values pair case-insensitively, so
``EN`` and ``en`` name the same entry.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .enums import DifferenceKind
from .tree import Each, Key, Path, Where, format_key_value, render

LANGUAGE_KEY = "language"


@dataclass
class Difference:
    """A single reported difference."""

    kind: DifferenceKind
    path: Path
    expected: Any = None
    actual: Any = None
    message: str = ""

    @property
    def expression(self) -> str:
        return render(self.path)


@dataclass
class ComparisonResult:
    """All differences found by one comparison."""

    missing_fields: List[Difference] = field(default_factory=list)
    failing_fields: List[Difference] = field(default_factory=list)
    missing_values: List[Difference] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.missing_fields or self.failing_fields or self.missing_values)

    @property
    def differences(self) -> List[Difference]:
        return self.missing_fields + self.failing_fields + self.missing_values

    def missing_value_paths(self) -> List[Path]:
        """Distinct array paths with missing values, in report order."""
        return list(dict.fromkeys(d.path for d in self.missing_values))

    def describe(self) -> str:
        return "; ".join(d.message or f"{d.kind.value} at '{d.expression}'" for d in self.differences)

    def _missing(self, path: Path, expected: Any) -> None:
        self.missing_fields.append(
            Difference(DifferenceKind.MISSING_FIELD, path, expected=expected,
                       message=f"{render(path)}: expected {expected!r} but none found")
        )

    def _fail(self, path: Path, expected: Any, actual: Any) -> None:
        self.failing_fields.append(
            Difference(DifferenceKind.FAILING_FIELD, path, expected=expected, actual=actual,
                       message=f"{render(path)}: expected {expected!r} but got {actual!r}")
        )

    def _mismatch(self, path: Path, message: str) -> None:
        self.missing_values.append(
            Difference(DifferenceKind.MISSING_VALUE, path, message=message)
        )


def node_kind(value: Any) -> str:
    """Classify a tree node: object, array, null, boolean, number or string."""
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def is_simple(value: Any) -> bool:
    return node_kind(value) not in ("object", "array")


def _qualify(prefix: Path, key: str) -> Path:
    return prefix + (Key(key),)


def compare(expected: Any, actual: Any) -> ComparisonResult:
    """Compare a submitted tree against a stored tree, leniently."""
    result = ComparisonResult()
    _compare_values((), expected, actual, result)
    return result


def _compare_values(path: Path, expected: Any, actual: Any, result: ComparisonResult) -> None:
    expected_kind = node_kind(expected)
    actual_kind = node_kind(actual)

    if expected_kind != actual_kind:
        result._fail(path, expected, actual)
    elif expected_kind == "object":
        _compare_objects(path, expected, actual, result)
    elif expected_kind == "array":
        _compare_arrays(path, expected, actual, result)
    elif expected_kind == "number":
        if float(expected) != float(actual):
            result._fail(path, expected, actual)
    elif expected != actual:
        result._fail(path, expected, actual)


def _compare_objects(
    prefix: Path, expected: Mapping[str, Any], actual: Mapping[str, Any], result: ComparisonResult
) -> None:
    for key, expected_value in expected.items():
        path = _qualify(prefix, key)
        if key in actual:
            _compare_values(path, expected_value, actual[key], result)
        else:
            result._missing(path, expected_value)


def _compare_arrays(path: Path, expected: List[Any], actual: List[Any], result: ComparisonResult) -> None:
    if len(expected) != len(actual):
        result._mismatch(
            path, f"{render(path)}: Expected {len(expected)} values but got {len(actual)}"
        )
        return
    if not expected:
        return

    if all(is_simple(item) for item in expected):
        _compare_simple_arrays(path, expected, actual, result)
    elif all(isinstance(item, Mapping) for item in expected):
        _compare_object_arrays(path, expected, actual, result)
    else:
        _compare_arrays_by_search(path, expected, actual, result)


def _simple_key(value: Any) -> tuple:
    # bool and int must not collapse into one Counter bucket
    kind = node_kind(value)
    return (kind, float(value)) if kind == "number" else (kind, value)


def _compare_simple_arrays(path: Path, expected: List[Any], actual: List[Any], result: ComparisonResult) -> None:
    if not all(is_simple(item) for item in actual):
        _compare_arrays_by_search(path, expected, actual, result)
        return

    expected_counts = Counter(_simple_key(item) for item in expected)
    actual_counts = Counter(_simple_key(item) for item in actual)
    first_seen: Dict[tuple, Any] = {}
    for item in expected:
        first_seen.setdefault(_simple_key(item), item)

    for key, count in expected_counts.items():
        if actual_counts.get(key, 0) < count:
            result._missing(path + (Each(),), first_seen[key])
    for key, count in actual_counts.items():
        if expected_counts.get(key, 0) < count:
            result._mismatch(path, f"{render(path)}: Unexpected value {key[1]!r}")


def key_identity(key: str, value: Any) -> str:
    """The pairing identity of a unique-key value; locales ignore case."""
    rendered = format_key_value(value)
    return rendered.lower() if key == LANGUAGE_KEY else rendered


def find_unique_key(items: List[Any]) -> Optional[str]:
    """
    Find a key that identifies each mapping in ``items``.

    ``language`` is preferred; otherwise keys of the first element are tried
    in order. A usable key is present in every element with a non-null
    scalar value, distinct across elements.
    """
    if not items or not isinstance(items[0], Mapping):
        return None
    candidates = list(items[0].keys())
    if LANGUAGE_KEY in candidates:
        candidates.remove(LANGUAGE_KEY)
        candidates.insert(0, LANGUAGE_KEY)
    for candidate in candidates:
        if is_usable_unique_key(candidate, items):
            return candidate
    return None


def is_usable_unique_key(key: str, items: List[Any]) -> bool:
    seen = set()
    for item in items:
        if not isinstance(item, Mapping) or key not in item:
            return False
        value = item[key]
        if value is None or not is_simple(value):
            return False
        identity = key_identity(key, value)
        if identity in seen:
            return False
        seen.add(identity)
    return True


def _compare_object_arrays(path: Path, expected: List[Any], actual: List[Any], result: ComparisonResult) -> None:
    unique_key = find_unique_key(expected)
    if unique_key is None or not is_usable_unique_key(unique_key, actual):
        _compare_arrays_by_search(path, expected, actual, result)
        return

    ignore_case = unique_key == LANGUAGE_KEY
    expected_map = {key_identity(unique_key, item[unique_key]): item for item in expected}
    actual_map = {key_identity(unique_key, item[unique_key]): item for item in actual}

    for item_id, expected_item in expected_map.items():
        literal = format_key_value(expected_item[unique_key])
        item_path = path + (Where(unique_key, literal, ignore_case),)
        if item_id not in actual_map:
            result._missing(item_path, expected_item)
            continue
        _compare_values(item_path, expected_item, actual_map[item_id], result)
    for item_id, actual_item in actual_map.items():
        if item_id not in expected_map:
            literal = format_key_value(actual_item[unique_key])
            element = render(path + (Where(unique_key, literal, ignore_case),))
            result._mismatch(path, f"{element}: Unexpected element")


def _compare_arrays_by_search(path: Path, expected: List[Any], actual: List[Any], result: ComparisonResult) -> None:
    """Pair every submitted element with some unused stored element that compares clean."""
    used = set()
    for index, expected_item in enumerate(expected):
        match = None
        for candidate_index, actual_item in enumerate(actual):
            if candidate_index in used:
                continue
            if not compare(expected_item, actual_item).failed:
                match = candidate_index
                break
        if match is None:
            result._mismatch(
                path, f"{render(path)}[{index}] Could not find match for element {expected_item!r}"
            )
            continue
        used.add(match)
