"""Partial input mapping for generation-2 workflows.

``inject_input`` takes a step's input template, a ``ref`` mapping of
``target path -> source path(s)`` and the run context, and returns a deep
copy of the template where only the mapped targets are replaced.

Target paths understand the array operators of :mod:`runback.path`::

    "[]"             replace the whole array with the source list
    "[].url"         distribute: one source element per target element
    "[*].status"     broadcast one value onto every element
    "[0-2].status"   inclusive range, clipped to the current length
    "[0,2].status"   explicit indices, clipped to the current length
    "[3].status"     single index, grows the array when needed

Sources may list comma separated alternatives (``"prod.url,defaults.url"``);
the first one that resolves wins. A source that resolves nowhere leaves the
template value untouched.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping, Optional

from .errors import (
    ContextError,
    MappingInputError,
    MappingTypeError,
    PathTypeError,
    type_name,
)
from .path import MISSING, Index, IndexKind, Key, Segment, get_path, parse_path

logger = logging.getLogger(__name__)

# Lower classes are applied first so higher classes win on overlap.
_PRIORITY = {
    IndexKind.EMPTY: 0,
    IndexKind.WILDCARD: 1,
    IndexKind.RANGE: 2,
    IndexKind.MULTI: 2,
    IndexKind.SINGLE: 3,
}


def mapping_priority(target: str) -> int:
    """Return the application class of a target path.

    The class is taken from the first bracket operator in the path. Plain
    object paths share the lowest class with whole-array operations.
    """
    for segment in parse_path(target):
        if isinstance(segment, Index):
            return _PRIORITY[segment.kind]
    return 0


def split_alternatives(source: str) -> list[str]:
    return [part.strip() for part in source.split(",") if part.strip()]


def resolve_source(source: str, context: Mapping[str, Any]) -> Any:
    """Resolve the first alternative of ``source`` present in ``context``.

    Returns a deep copy of the value, or ``MISSING`` when no alternative
    resolves. ``None``, ``0`` and ``False`` are real values and win.
    """
    for alternative in split_alternatives(source):
        try:
            value = get_path(context, alternative)
        except PathTypeError as exc:
            logger.debug(f"Source alternative '{alternative}' skipped: {exc}")
            continue
        if value is not MISSING:
            return copy.deepcopy(value)
    return MISSING


def inject_input(
    input: Any, ref: Optional[Mapping[str, str]], context: Mapping[str, Any]
) -> Any:
    """Return a copy of ``input`` with every ``ref`` target filled from ``context``.

    Neither ``input`` nor ``context`` is modified.

    Raises:
        MappingInputError: ``input`` is ``None``.
        ContextError: ``context`` is not a mapping.
        MappingTypeError: an array operator met a non-array target, or a
            whole-array replace got a non-array source.
        PathSyntaxError: a target or source path is malformed.
    """
    if input is None:
        raise MappingInputError("Mapping input must not be None")
    if not isinstance(context, Mapping):
        raise ContextError(type_name(context))
    if not ref:
        return copy.deepcopy(input)

    original = {} if isinstance(input, (str, int, float, bool)) else input
    result = copy.deepcopy(original)

    entries = [(target, source, parse_path(target)) for target, source in ref.items()]
    for source in ref.values():
        for alternative in split_alternatives(source):
            parse_path(alternative)
    entries.sort(key=lambda entry: mapping_priority(entry[0]))

    for target, source, segments in entries:
        value = resolve_source(source, context)
        if value is MISSING:
            logger.debug(f"No value for '{target}' from '{source}', keeping template")
            continue
        result = _assign(result, segments, value, original, target)
    return result


def _child(original: Any, key: Any) -> Any:
    if isinstance(original, Mapping):
        return original.get(key)
    if isinstance(original, list) and isinstance(key, int) and key < len(original):
        return original[key]
    return None


def _template_for(original: Any, index: int) -> Any:
    """Clone the original element nearest to ``index`` (searching backwards)."""
    if not isinstance(original, list) or not original:
        return {}
    for i in range(min(index, len(original) - 1), -1, -1):
        if isinstance(original[i], dict):
            return copy.deepcopy(original[i])
    return {}


def _pad(items: list, length: int) -> None:
    while len(items) < length:
        items.append({})


def _resize(items: list, length: int, original: Any) -> None:
    del items[length:]
    while len(items) < length:
        items.append(_template_for(original, len(items)))


def _assign(
    current: Any,
    segments: tuple[Segment, ...],
    value: Any,
    original: Any,
    target: str,
) -> Any:
    if not segments:
        return value
    segment, rest = segments[0], segments[1:]

    if isinstance(segment, Key):
        if isinstance(current, list):
            if not segment.name.isdigit():
                raise MappingTypeError(target, "object", "array")
            index = int(segment.name)
            _pad(current, index + 1)
            current[index] = _assign(
                current[index], rest, value, _child(original, index), target
            )
            return current
        if not isinstance(current, dict):
            current = {}
        current[segment.name] = _assign(
            current.get(segment.name), rest, value, _child(original, segment.name), target
        )
        return current

    if current is None:
        current = []
    if not isinstance(current, list):
        raise MappingTypeError(target, "array", type_name(current))

    kind = segment.kind
    if kind is IndexKind.EMPTY:
        if not rest:
            if not isinstance(value, list):
                raise MappingTypeError(target, "array", type_name(value))
            current[:] = value
            return current
        if not isinstance(value, list):
            for i, item in enumerate(current):
                current[i] = _assign(
                    item, rest, copy.deepcopy(value), _child(original, i), target
                )
            return current
        _resize(current, len(value), original)
        for i, item_value in enumerate(value):
            if isinstance(rest[0], Key) and not isinstance(current[i], dict):
                current[i] = _template_for(original, i)
            current[i] = _assign(current[i], rest, item_value, _child(original, i), target)
        return current

    if kind is IndexKind.WILDCARD:
        indices = list(range(len(current)))
    elif kind is IndexKind.SINGLE:
        indices = list(segment.spec.indices)
        _pad(current, indices[0] + 1)
    else:
        indices = [i for i in segment.spec.expand() if i < len(current)]

    for i in indices:
        current[i] = _assign(
            current[i], rest, copy.deepcopy(value), _child(original, i), target
        )
    return current
