"""Path parsing and resolution over nested dict/list trees.

A path is a dot separated list of keys, where any key may be followed by one
or more bracket operators::

    user.profile.name      plain keys
    items[0].id            single index
    items[]                whole array (read) / distribute (write)
    items[*].status        broadcast / wildcard
    items[1-3].flag        inclusive range
    items[0,2,4].flag      explicit indices
    [*].items[*].status    operators may also start a path

Paths are tokenised by a small lexer and parsed into a tuple of ``Key`` and
``Index`` segments, which the resolver walks recursively.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Iterator, Mapping, MutableMapping, Sequence, Union

from .errors import PathSyntaxError, PathTypeError, type_name


class _Missing:
    """Sentinel type for values that could not be resolved."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo: dict) -> "_Missing":
        return self


MISSING: Any = _Missing()


class IndexKind(str, Enum):
    EMPTY = "empty"
    WILDCARD = "wildcard"
    SINGLE = "single"
    MULTI = "multi"
    RANGE = "range"


@dataclass(frozen=True)
class IndexSpec:
    """Content of one bracket operator."""

    kind: IndexKind
    indices: tuple[int, ...] = ()

    def expand(self) -> list[int]:
        """Return the concrete indices addressed by this operator."""
        if self.kind is IndexKind.RANGE:
            start, end = self.indices
            return list(range(start, end + 1))
        return list(self.indices)

    def __str__(self) -> str:
        if self.kind is IndexKind.EMPTY:
            return "[]"
        if self.kind is IndexKind.WILDCARD:
            return "[*]"
        if self.kind is IndexKind.RANGE:
            return f"[{self.indices[0]}-{self.indices[1]}]"
        return "[" + ",".join(str(i) for i in self.indices) + "]"


@dataclass(frozen=True)
class Key:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Index:
    spec: IndexSpec

    @property
    def kind(self) -> IndexKind:
        return self.spec.kind

    def __str__(self) -> str:
        return str(self.spec)


Segment = Union[Key, Index]
PathLike = Union[str, Sequence[Segment]]

_IDENT_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_$"
)
_PUNCTUATION = {".": "DOT", ",": "COMMA", "-": "DASH", "[": "LBRACKET", "]": "RBRACKET", "*": "STAR"}


@dataclass(frozen=True)
class _Token:
    type: str
    value: str
    position: int


def _tokenize(path: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    length = len(path)
    while pos < length:
        char = path[pos]
        if char.isspace():
            pos += 1
            continue
        if char in _IDENT_CHARS:
            start = pos
            while pos < length and path[pos] in _IDENT_CHARS:
                pos += 1
            tokens.append(_Token("IDENT", path[start:pos], start))
            continue
        kind = _PUNCTUATION.get(char)
        if kind is None:
            raise PathSyntaxError(path, f"unexpected character {char!r}", pos)
        tokens.append(_Token(kind, char, pos))
        pos += 1
    tokens.append(_Token("EOF", "", length))
    return tokens


class _Parser:
    """Recursive descent parser producing path segments."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.tokens = _tokenize(path)
        self.pos = 0

    @property
    def current(self) -> _Token:
        return self.tokens[self.pos]

    def _error(self, reason: str) -> PathSyntaxError:
        return PathSyntaxError(self.path, reason, self.current.position)

    def _expect(self, token_type: str, what: str) -> _Token:
        token = self.current
        if token.type != token_type:
            found = "end of path" if token.type == "EOF" else repr(token.value)
            raise self._error(f"expected {what}, found {found}")
        self.pos += 1
        return token

    def parse(self) -> tuple[Segment, ...]:
        segments: list[Segment] = []
        if self.current.type == "EOF":
            raise self._error("path is empty")
        if self.current.type == "LBRACKET":
            segments.extend(self._brackets())
        else:
            segments.append(Key(self._expect("IDENT", "a key").value))
            segments.extend(self._brackets())

        while self.current.type != "EOF":
            if self.current.type == "DOT":
                self.pos += 1
                segments.append(Key(self._expect("IDENT", "a key after '.'").value))
                segments.extend(self._brackets())
            else:
                raise self._error(f"unexpected {self.current.value!r}")
        return tuple(segments)

    def _brackets(self) -> Iterator[Index]:
        while self.current.type == "LBRACKET":
            yield Index(self._index_spec())

    def _number(self) -> int:
        token = self._expect("IDENT", "an index")
        if not token.value.isdigit():
            raise PathSyntaxError(
                self.path, f"index {token.value!r} is not a non-negative integer", token.position
            )
        return int(token.value)

    def _index_spec(self) -> IndexSpec:
        self._expect("LBRACKET", "'['")
        if self.current.type == "RBRACKET":
            self.pos += 1
            return IndexSpec(IndexKind.EMPTY)
        if self.current.type == "STAR":
            self.pos += 1
            self._expect("RBRACKET", "']' after '*'")
            return IndexSpec(IndexKind.WILDCARD)

        first = self._number()
        if self.current.type == "DASH":
            self.pos += 1
            end = self._number()
            self._expect("RBRACKET", "']' after range")
            if first > end:
                raise PathSyntaxError(self.path, f"range start {first} exceeds end {end}")
            return IndexSpec(IndexKind.RANGE, (first, end))

        indices = [first]
        while self.current.type == "COMMA":
            self.pos += 1
            indices.append(self._number())
        self._expect("RBRACKET", "',' or ']'")
        if len(indices) == 1:
            return IndexSpec(IndexKind.SINGLE, tuple(indices))
        return IndexSpec(IndexKind.MULTI, tuple(indices))


@lru_cache(maxsize=1024)
def parse_path(path: str) -> tuple[Segment, ...]:
    """Parse ``path`` into segments, raising ``PathSyntaxError`` when malformed."""
    return _Parser(path.strip()).parse()


def format_path(segments: Sequence[Segment]) -> str:
    out = ""
    for segment in segments:
        if isinstance(segment, Key):
            out += ("." if out else "") + segment.name
        else:
            out += str(segment)
    return out


def _segments(path: PathLike) -> tuple[Segment, ...]:
    if isinstance(path, str):
        return parse_path(path)
    return tuple(path)


def _require_list(value: Any, path: str, segment: Segment) -> list:
    if not isinstance(value, list):
        raise PathTypeError(path, str(segment), "array", type_name(value))
    return value


# ----------------------------------------------------------------------
# Reading


def get_path(root: Any, path: PathLike) -> Any:
    """Return the value at ``path`` or ``MISSING`` when it does not exist.

    Out-of-range indices and absent keys resolve to ``MISSING``. An index
    operator applied to something that is not a list raises ``PathTypeError``.
    """
    segments = _segments(path)
    label = path if isinstance(path, str) else format_path(segments)
    return _get(root, segments, label)


def _get(current: Any, segments: tuple[Segment, ...], path: str) -> Any:
    if not segments:
        return current
    segment, rest = segments[0], segments[1:]

    if isinstance(segment, Key):
        if isinstance(current, Mapping):
            if segment.name not in current:
                return MISSING
            return _get(current[segment.name], rest, path)
        if isinstance(current, list) and segment.name.isdigit():
            index = int(segment.name)
            if index >= len(current):
                return MISSING
            return _get(current[index], rest, path)
        return MISSING

    items = _require_list(current, path, segment)
    kind = segment.kind
    if kind is IndexKind.SINGLE:
        index = segment.spec.indices[0]
        if index >= len(items):
            return MISSING
        return _get(items[index], rest, path)
    if kind in (IndexKind.EMPTY, IndexKind.WILDCARD):
        if not rest:
            return items
        selected = items
    else:
        selected = [items[i] for i in segment.spec.expand() if i < len(items)]
        if not rest:
            return selected
    values = (_get(item, rest, path) for item in selected)
    return [value for value in values if value is not MISSING]


# ----------------------------------------------------------------------
# Writing


def set_path(
    root: Any, path: PathLike, value: Any, *, grow_ranges: bool = True
) -> Any:
    """Write ``value`` at ``path`` inside ``root`` and return the root.

    Missing intermediate objects are created and lists are padded with empty
    objects to reach a requested index. ``[]`` as the last operator replaces
    the list contents; followed by more segments it distributes a list value
    element by element. When ``grow_ranges`` is false, range and multi-index
    operators only touch indices inside the current bounds.
    """
    segments = _segments(path)
    label = path if isinstance(path, str) else format_path(segments)
    return _set(root, segments, value, label, grow_ranges)


def _pad(items: list, length: int) -> None:
    while len(items) < length:
        items.append({})


def _set(
    current: Any,
    segments: tuple[Segment, ...],
    value: Any,
    path: str,
    grow_ranges: bool,
) -> Any:
    if not segments:
        return value
    segment, rest = segments[0], segments[1:]

    if isinstance(segment, Key):
        if isinstance(current, list) and segment.name.isdigit():
            index = int(segment.name)
            _pad(current, index + 1)
            current[index] = _set(current[index], rest, value, path, grow_ranges)
            return current
        if not isinstance(current, MutableMapping):
            current = {}
        child = current.get(segment.name)
        current[segment.name] = _set(child, rest, value, path, grow_ranges)
        return current

    if current is None:
        current = []
    items = _require_list(current, path, segment)
    kind = segment.kind

    if kind is IndexKind.EMPTY:
        if not isinstance(value, list):
            if rest:
                for i, item in enumerate(items):
                    items[i] = _set(item, rest, copy.deepcopy(value), path, grow_ranges)
                return items
            raise PathTypeError(path, str(segment), "array value", type_name(value))
        if not rest:
            items[:] = copy.deepcopy(value)
            return items
        _pad(items, len(value))
        for i, item_value in enumerate(value):
            items[i] = _set(items[i], rest, item_value, path, grow_ranges)
        return items

    if kind is IndexKind.WILDCARD:
        for i, item in enumerate(items):
            items[i] = _set(item, rest, copy.deepcopy(value), path, grow_ranges)
        return items

    indices = segment.spec.expand()
    if kind is IndexKind.SINGLE or grow_ranges:
        _pad(items, max(indices) + 1)
    for i in indices:
        if i < len(items):
            items[i] = _set(items[i], rest, copy.deepcopy(value), path, grow_ranges)
    return items
