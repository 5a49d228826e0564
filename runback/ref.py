"""Reference placeholders for generation-1 step options.

Two ways of pointing into the run context are supported.

String placeholders::

    {"user": "$ref.getUser.name", "merged": "$ref.left.value,$ref.right.value"}

Attribute references built with :func:`create_ref`::

    user = create_ref("getUser")
    {"user": user.name}

Both are reduced to a flat ``{"location.in.template": "source.path"}``
mapping which :func:`inject` uses to copy values out of the context.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from typing import Any, Collection, Iterator, Mapping, Optional, Union

logger = logging.getLogger(__name__)

REF_PREFIX = "$ref."
ITERATION_NAMES = ("$item", "$index")

_PREFIX_RE = re.compile(r"^\s*\$ref\.")
_INDEX_RE = re.compile(r"\[(\d+)\]")

RefMapping = dict[str, Union[str, list[str]]]


@dataclass(frozen=True)
class RefKey:
    id: str
    path: str

    def __str__(self) -> str:
        return f"{self.id}.{self.path}" if self.path else self.id


class Ref:
    """Attribute-access builder for context references.

    ``create_ref("getUser").profile.name`` records the path
    ``getUser.profile.name``; ``ref["items"][0]`` works for keys that are not
    identifiers.
    """

    __slots__ = ("_id", "_path")

    def __init__(self, id: str, path: tuple[str, ...] = ()) -> None:
        object.__setattr__(self, "_id", id)
        object.__setattr__(self, "_path", path)

    def __getattr__(self, name: str) -> "Ref":
        if name.startswith("__"):
            raise AttributeError(name)
        return Ref(self._id, self._path + (name,))

    def __getitem__(self, key: Union[str, int]) -> "Ref":
        return Ref(self._id, self._path + (str(key),))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Ref objects are immutable")

    @property
    def __ref__(self) -> RefKey:
        return RefKey(self._id, ".".join(self._path))

    def __deepcopy__(self, memo: dict) -> "Ref":
        return self

    def __repr__(self) -> str:
        return f"Ref({self.__ref__})"


def create_ref(id: str) -> Ref:
    return Ref(id)


def _walk(value: Any, location: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Any]]:
    """Yield ``(location, leaf)`` for every leaf of a nested template."""
    if isinstance(value, Mapping):
        for key, item in value.items():
            yield from _walk(item, location + (str(key),))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _walk(item, location + (str(index),))
    else:
        yield location, value


def collect(template: Any) -> dict[str, str]:
    """Map each ``Ref`` leaf's location to the path it references."""
    return {
        ".".join(location): str(leaf.__ref__)
        for location, leaf in _walk(template)
        if isinstance(leaf, Ref)
    }


def parse_ref_path(value: str) -> str:
    """Strip the ``$ref.`` marker and turn ``[n]`` into ``.n``."""
    return _INDEX_RE.sub(r".\1", _PREFIX_RE.sub("", value, count=1)).strip()


def is_ref_string(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(REF_PREFIX)


def collect_from_ref_string(template: Any) -> RefMapping:
    """Map each ``$ref.`` string leaf's location to its path or alternatives."""
    result: RefMapping = {}
    for location, leaf in _walk(template):
        if not is_ref_string(leaf):
            continue
        refs = [parse_ref_path(part) for part in leaf.split(",")]
        result[".".join(location)] = refs if len(refs) > 1 else refs[0]
    return result


def to_ref_strings(template: Any) -> Any:
    """Return ``template`` with every ``Ref`` leaf replaced by a ``$ref.`` string."""
    if isinstance(template, Ref):
        return REF_PREFIX + str(template.__ref__)
    mapping = collect(template)
    if not mapping:
        return template
    result = copy.deepcopy(template)
    for location, path in mapping.items():
        _assign_dotted(result, location.split("."), REF_PREFIX + path)
    return result


def get_dotted(source: Any, path: str) -> Any:
    """Read a dotted path; numeric segments index lists. Missing values are ``None``."""
    current = source
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, list):
            if not key.isdigit() or int(key) >= len(current):
                return None
            current = current[int(key)]
        elif isinstance(current, Mapping):
            current = current.get(key)
        else:
            return None
    return current


def _prefixes(path: str) -> list[str]:
    parts = path.split(".")
    return [".".join(parts[: i + 1]) for i in range(len(parts))]


def _was_written(path: str, context: Mapping[str, Any], written: Collection[str]) -> bool:
    root = path.split(".", 1)[0]
    if root in ITERATION_NAMES:
        return root in context
    return any(prefix in written for prefix in _prefixes(path))


def _has_value(path: str, context: Mapping[str, Any]) -> bool:
    return get_dotted(context, path) is not None


def select_alternatives(
    mapping: RefMapping,
    context: Mapping[str, Any],
    written: Optional[Collection[str]] = None,
) -> dict[str, str]:
    """Reduce alternative lists to the first alternative written this run.

    When nothing was written this run (a step run on its own against a
    restored context) the first alternative holding a value is used. When
    neither exists the first one is kept, so the location resolves to
    ``None`` like any other missing path.
    """
    written = written if written is not None else ()
    selected: dict[str, str] = {}
    for location, value in mapping.items():
        if isinstance(value, str):
            selected[location] = value
            continue
        chosen = next((v for v in value if _was_written(v, context, written)), None)
        if chosen is None:
            chosen = next((v for v in value if _has_value(v, context)), value[0])
        logger.debug(f"Selected '{chosen}' for '{location}' from {value}")
        selected[location] = chosen
    return selected


def _assign_dotted(target: Any, keys: list[str], value: Any) -> None:
    current = target
    for i, key in enumerate(keys):
        last = i == len(keys) - 1
        if isinstance(current, list) and key.isdigit() and int(key) < len(current):
            if last:
                current[int(key)] = value
            else:
                if not isinstance(current[int(key)], (dict, list)):
                    current[int(key)] = {}
                current = current[int(key)]
            continue
        if last:
            current[key] = value
        else:
            if not isinstance(current.get(key), (dict, list)):
                current[key] = {}
            current = current[key]


def inject(target: Any, source: Mapping[str, Any], mapping: Mapping[str, str]) -> None:
    """Copy every mapped source path into ``target`` in place.

    Missing source paths are written as ``None``. Intermediate dicts are
    created as needed and unrelated fields are kept.
    """
    for to_path, from_path in mapping.items():
        value = copy.deepcopy(get_dotted(source, from_path))
        _assign_dotted(target, to_path.split("."), value)


def resolve_references(
    template: Any,
    context: Mapping[str, Any],
    written: Optional[Collection[str]] = None,
) -> Any:
    """Return a copy of ``template`` with every reference replaced by its value."""
    if is_ref_string(template):
        mapping = select_alternatives(collect_from_ref_string(template), context, written)
        return copy.deepcopy(get_dotted(context, mapping[""]))
    result = copy.deepcopy(template)
    mapping = select_alternatives(collect_from_ref_string(result), context, written)
    inject(result, context, mapping)
    return result
