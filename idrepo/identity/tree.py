"""
Path resolution over payload trees.

A path is a tuple of segments:

- ``Key(name)``: the member ``name`` of a mapping, whatever characters the
  name contains,
- ``Where(key, literal)``: the elements of an array whose ``key`` renders to
  ``literal``, so a write targets an element by identity rather than by
  position,
- ``Each()``: every element of an array.

The empty tuple is the root. ``render`` turns a path into a predicate
expression (``$.fullName[?(@.language=='eng')].value``) for messages and
logs only; paths are never parsed back from text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from .errors import PathResolutionError
from .primitives import TreeValue

ROOT = "$"

_PLAIN_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Key:
    name: str


@dataclass(frozen=True)
class Where:
    key: str
    literal: str
    ignore_case: bool = False

    def matches(self, item: Any) -> bool:
        if not isinstance(item, dict) or self.key not in item:
            return False
        rendered = format_key_value(item[self.key])
        if self.ignore_case:
            return rendered.lower() == self.literal.lower()
        return rendered == self.literal


@dataclass(frozen=True)
class Each:
    pass


Segment = Union[Key, Where, Each]
Path = Tuple[Segment, ...]


def format_key_value(value: Any) -> str:
    """Render a unique-key value the way it appears inside a path."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _quote(text: str) -> str:
    return "'" + text.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _member(name: str) -> str:
    return f".{name}" if _PLAIN_NAME.match(name) else f"[{_quote(name)}]"


def render(path: Path) -> str:
    """
    Render a path as a predicate expression.

    Examples:
        (Key("address"), Key("city")) -> "$.address.city"
        (Key("geo.lat"),) -> "$['geo.lat']"
        (Key("names"), Where("language", "en")) -> "$.names[?(@.language=='en')]"
        (Key("tags"), Each()) -> "$.tags[*]"
    """
    parts = [ROOT]
    for segment in path:
        if isinstance(segment, Key):
            parts.append(_member(segment.name))
        elif isinstance(segment, Where):
            parts.append(f"[?(@{_member(segment.key)}=={_quote(segment.literal)})]")
        else:
            parts.append("[*]")
    return "".join(parts)


def _step(node: TreeValue, segment: Segment) -> List[TreeValue]:
    if isinstance(segment, Key):
        if isinstance(node, dict) and segment.name in node:
            return [node[segment.name]]
        return []
    if not isinstance(node, list):
        return []
    if isinstance(segment, Where):
        return [item for item in node if segment.matches(item)]
    return list(node)


def select(tree: TreeValue, path: Path) -> List[TreeValue]:
    """Return every node matched by ``path`` (live references, not copies)."""
    nodes = [tree]
    for segment in path:
        nodes = [match for node in nodes for match in _step(node, segment)]
    return nodes


def select_one(tree: TreeValue, path: Path) -> Optional[TreeValue]:
    """Return the first node matched by ``path``, or None."""
    matches = select(tree, path)
    return matches[0] if matches else None


def put(tree: TreeValue, parent: Path, key: str, value: Any) -> int:
    """
    Set ``key`` to ``value`` on every mapping matched by ``parent``.

    Returns the number of mappings written.

    Raises:
        PathResolutionError: If no mapping matches
    """
    targets = [node for node in select(tree, parent) if isinstance(node, dict)]
    if not targets:
        raise PathResolutionError(
            f"No object at '{render(parent)}' to set '{key}' on",
            path=render(parent + (Key(key),)),
        )
    for target in targets:
        target[key] = value
    return len(targets)


def append(tree: TreeValue, path: Path, value: Any) -> int:
    """
    Append ``value`` to every array matched by ``path``.

    Raises:
        PathResolutionError: If no array matches
    """
    targets = [node for node in select(tree, path) if isinstance(node, list)]
    if not targets:
        raise PathResolutionError(f"No array at '{render(path)}' to append to", path=render(path))
    for target in targets:
        target.append(value)
    return len(targets)
