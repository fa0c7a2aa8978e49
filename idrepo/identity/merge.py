"""
Reconciliation of a submitted partial payload against the stored payload.

The merge runs three passes in a fixed order, re-deriving the comparison
before each one:

1. missing fields are written into the stored tree,
2. failing fields are overwritten (the submitted value wins, except that a
   submitted null is replaced by the stored value),
3. locale-tagged arrays are unioned in both directions.

The round repeats until the trees compare clean, a round changes nothing, or
``max_passes`` rounds have run.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple

import structlog

from .compare import LANGUAGE_KEY, ComparisonResult, compare
from .errors import PathResolutionError, ProcessingFailedError
from .primitives import TreeValue, serialize_tree
from .tree import Key, Path, append, put, render, select_one

logger = structlog.get_logger()

DEFAULT_MAX_PASSES = 5


@dataclass
class MergeResult:
    """Outcome of a reconciliation."""

    input: TreeValue
    stored: TreeValue
    changed: bool
    rounds: int
    converged: bool


class PayloadReconciler:
    """Merges a submitted payload into a stored payload without data loss.

    Neither argument of ``reconcile`` is mutated; merged copies are returned.
    """

    def __init__(self, max_passes: int = DEFAULT_MAX_PASSES, language_key: str = LANGUAGE_KEY):
        if max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        self.max_passes = max_passes
        self.language_key = language_key

    def reconcile(self, submitted: TreeValue, stored: TreeValue) -> MergeResult:
        if not isinstance(submitted, Mapping) or not isinstance(stored, Mapping):
            raise ProcessingFailedError("Payloads must be JSON objects at the root")

        comparison = compare(submitted, stored)
        if not comparison.failed:
            return MergeResult(submitted, stored, changed=False, rounds=0, converged=True)

        original = serialize_tree(stored)
        merged_input = copy.deepcopy(submitted)
        merged_stored = copy.deepcopy(stored)

        rounds = 0
        while comparison.failed and rounds < self.max_passes:
            before = (serialize_tree(merged_input), serialize_tree(merged_stored))
            comparison = self._run_round(merged_input, merged_stored, comparison)
            rounds += 1
            if (serialize_tree(merged_input), serialize_tree(merged_stored)) == before:
                break

        converged = not comparison.failed
        if not converged:
            logger.warning(
                "payload_merge_not_converged",
                rounds=rounds,
                remaining=[d.expression for d in comparison.differences],
            )

        return MergeResult(
            merged_input,
            merged_stored,
            changed=serialize_tree(merged_stored) != original,
            rounds=rounds,
            converged=converged,
        )

    def _run_round(
        self, submitted: TreeValue, stored: TreeValue, comparison: ComparisonResult
    ) -> ComparisonResult:
        if comparison.missing_fields:
            self.apply_missing_fields(stored, comparison)
            comparison = compare(submitted, stored)

        if comparison.failing_fields:
            self.apply_failing_fields(submitted, stored, comparison)
            comparison = compare(submitted, stored)

        if comparison.missing_values:
            self.apply_missing_values(submitted, stored, comparison)
            comparison = compare(submitted, stored)

        return comparison

    def apply_missing_fields(self, stored: TreeValue, comparison: ComparisonResult) -> None:
        """Write each submitted-only value into the stored tree."""
        for difference in comparison.missing_fields:
            if not difference.path:
                raise PathResolutionError("Cannot add a value at the root", path=difference.expression)
            parent, last = difference.path[:-1], difference.path[-1]
            value = copy.deepcopy(difference.expected)
            if isinstance(last, Key):
                put(stored, parent, last.name, value)
            else:
                # element paths name the array they belong to
                append(stored, parent, value)

    def apply_failing_fields(
        self, submitted: TreeValue, stored: TreeValue, comparison: ComparisonResult
    ) -> None:
        """Resolve value conflicts; containers are replaced wholesale on both sides."""
        for difference in comparison.failing_fields:
            parent_path, key = self._resolve_parent(difference.path)
            expected = difference.expected

            if isinstance(expected, (list, Mapping)):
                put(stored, parent_path, key, copy.deepcopy(expected))
                put(submitted, parent_path, key, copy.deepcopy(expected))
            elif expected is None:
                # an explicit null never erases a stored value
                put(submitted, parent_path, key, copy.deepcopy(difference.actual))
            else:
                put(stored, parent_path, key, expected)

    def apply_missing_values(
        self, submitted: TreeValue, stored: TreeValue, comparison: ComparisonResult
    ) -> None:
        """Union locale-tagged entries of mismatched arrays in both directions."""
        for path in comparison.missing_value_paths():
            submitted_list = select_one(submitted, path)
            stored_list = select_one(stored, path)
            if not isinstance(submitted_list, list) or not isinstance(stored_list, list):
                continue

            to_stored = self._absent_locales(submitted_list, stored_list)
            to_submitted = self._absent_locales(stored_list, submitted_list)
            stored_list.extend(copy.deepcopy(entry) for entry in to_stored)
            submitted_list.extend(copy.deepcopy(entry) for entry in to_submitted)

    def _absent_locales(self, source: List[Any], target: List[Any]) -> List[Any]:
        """Entries of ``source`` whose locale appears nowhere in ``target``."""
        target_locales = {
            str(entry[self.language_key]).lower()
            for entry in target
            if isinstance(entry, Mapping) and self.language_key in entry
        }
        return [
            entry for entry in source
            if isinstance(entry, Mapping)
            and self.language_key in entry
            and str(entry[self.language_key]).lower() not in target_locales
        ]

    @staticmethod
    def _resolve_parent(path: Path) -> Tuple[Path, str]:
        if not path or not isinstance(path[-1], Key):
            raise PathResolutionError("Conflicting value is not an object member", path=render(path))
        return path[:-1], path[-1].name
