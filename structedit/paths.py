"""
structedit.paths — Field path addressing.

A field path locates one value inside a tree.  Its text form is the name
attribute a form field carries, and the same string is handed to an
external byte-level updater:

    server.port          Key("server"), Key("port")
    tags.2               Key("tags"), Index(2)
    connection.@timeout  Key("connection"), Attr("timeout")

Grammar:  segment ("." segment)*   where   segment = "@" name | digits | name

Digits with a leading zero ("01") are a Key, not an Index, so that
parsing and formatting stay exact inverses.  An Attr segment may only
appear last; an "@name" segment anywhere else is read as a Key.  Object
keys that begin with "@" (JSON-LD "@context") therefore format as
attribute syntax when they end a path, and lookup resolves an Attr on
an Object to that key.
"""

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .core import Array, Node, Object, XmlElement
from .errors import InvalidPathError


_INDEX = re.compile(r"0|[1-9][0-9]*")


@dataclass(frozen=True, slots=True)
class Key:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Index:
    index: int

    def __post_init__(self):
        if self.index < 0:
            raise ValueError(f"Index must be non-negative, got {self.index}")

    def __str__(self) -> str:
        return str(self.index)


@dataclass(frozen=True, slots=True)
class Attr:
    name: str

    def __str__(self) -> str:
        return f"@{self.name}"


Segment = Union[Key, Index, Attr]


@dataclass(frozen=True, slots=True)
class FieldPath:
    """An immutable sequence of path segments.  The empty path is the root."""
    segments: tuple = ()

    def __post_init__(self):
        segments = tuple(self.segments)
        for seg in segments[:-1]:
            if isinstance(seg, Attr):
                raise InvalidPathError(".".join(str(s) for s in segments),
                                       "an attribute segment must be last")
        object.__setattr__(self, "segments", segments)

    @classmethod
    def of(cls, *segments: Union[Segment, str, int]) -> "FieldPath":
        """Build a path from segments, plain strings (keys) and ints (indices)."""
        converted = []
        for seg in segments:
            if isinstance(seg, bool):
                raise TypeError("bool is not a path segment")
            if isinstance(seg, int):
                converted.append(Index(seg))
            elif isinstance(seg, str):
                converted.append(Key(seg))
            else:
                converted.append(seg)
        return cls(tuple(converted))

    @classmethod
    def parse(cls, raw: str) -> "FieldPath":
        if raw == "":
            return cls()
        segments: list = []
        parts = raw.split(".")
        for position, part in enumerate(parts):
            if part == "":
                raise InvalidPathError(raw, "empty segment")
            if part.startswith("@"):
                if len(part) == 1:
                    raise InvalidPathError(raw, "attribute name missing after '@'")
                if position != len(parts) - 1:
                    # Only a leaf can be an attribute; earlier it is an "@key".
                    segments.append(Key(part))
                else:
                    segments.append(Attr(part[1:]))
            elif _INDEX.fullmatch(part):
                segments.append(Index(int(part)))
            else:
                segments.append(Key(part))
        return cls(tuple(segments))

    def format(self) -> str:
        return ".".join(str(seg) for seg in self.segments)

    def __str__(self) -> str:
        return self.format()

    def __repr__(self) -> str:
        return f"FieldPath({self.format()!r})"

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def child(self, segment: Union[Segment, str, int]) -> "FieldPath":
        return FieldPath(self.segments + FieldPath.of(segment).segments)

    @property
    def parent(self) -> "FieldPath":
        return FieldPath(self.segments[:-1])

    @property
    def last(self) -> Optional[Segment]:
        return self.segments[-1] if self.segments else None

    @property
    def is_root(self) -> bool:
        return not self.segments


def as_path(path: Union[FieldPath, str]) -> FieldPath:
    if isinstance(path, FieldPath):
        return path
    return FieldPath.parse(path)


# ═══════════════════════════════════════════════════════════════════
#  STRUCTURAL LOOKUP
# ═══════════════════════════════════════════════════════════════════

def step(node: Node, segment: Segment) -> Optional[Node]:
    """
    Follow one segment from `node`, or return None when there is nothing
    there.  Never raises for a missing location.

    An Index on an Object falls back to the key of the same spelling, so
    "servers.0" works on {"servers": {"0": ...}} as well as on a list.
    An Attr on an Object does the same with its "@name" spelling.
    """
    if isinstance(segment, Attr):
        if isinstance(node, XmlElement):
            return node.attributes.get(segment.name)
        if isinstance(node, Object):
            return node.entries.get(str(segment))
        return None
    if isinstance(segment, Index):
        if isinstance(node, Array):
            if segment.index < len(node.items):
                return node.items[segment.index]
            return None
        if isinstance(node, Object):
            return node.entries.get(str(segment.index))
        return None
    if isinstance(node, Object):
        return node.entries.get(segment.name)
    if isinstance(node, XmlElement):
        return node.children.get(segment.name)
    return None


def lookup(tree: Node, path: Union[FieldPath, str]) -> Optional[Node]:
    """Resolve `path` in `tree`.  Missing intermediate levels yield None."""
    node: Optional[Node] = tree
    for segment in as_path(path):
        if node is None:
            return None
        node = step(node, segment)
    return node
