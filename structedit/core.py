"""
structedit.core — The unified document tree
============================================

One tree type is shared by every file format the library understands.
JSON, ENV and XML are structurally different, but all of them reduce to
a handful of node shapes:

    Scalar(v)                      a leaf: str, number, bool or None
    Array((n₁, ..., nₖ))           an ordered sequence of nodes
    Object({k₁: n₁, ..., kₖ: nₖ})  an ORDERED mapping of string keys
    XmlElement(tag, attrs, children, text)
                                   an XML element, only produced by the
                                   XML codec

NUMBERS
───────
There is a single Number type.  Python ints are normalized to float on
construction, so Scalar(2) == Scalar(2.0).  Rendering follows the rules
of JavaScript's String(n): integral values print without a fractional
part, non-finite values print as NaN / Infinity / -Infinity.

BOOLEANS
────────
bool is a subclass of int in Python (True == 1).  Scalar equality is
type-aware so that Scalar(True) != Scalar(1).

XML KIND
────────
XmlElement.kind is DERIVED from the facets that are present:

    attributes non-empty  →  Kind.HAS_ATTRIBUTES
    children non-empty    →  Kind.HAS_CHILDREN
    text present          →  Kind.HAS_TEXT

It is a property, never stored, so it can never disagree with the
element.  An element with kind == Kind(0) is a true empty element and
serializes self-closing.

IMMUTABILITY
────────────
All nodes are frozen.  "Modifying" a tree means building a new one that
shares its untouched subtrees with the old one (see structedit.changes),
so an original tree stays valid as a fallback whatever happens to its
edited copy.
"""

import json
import math
import re
from dataclasses import dataclass
from enum import Flag, auto
from typing import Any, Optional, Union


# ═══════════════════════════════════════════════════════════════════
#  NODE TYPES
# ═══════════════════════════════════════════════════════════════════

class Node:
    """Base class for tree nodes.  Not instantiated directly."""
    __slots__ = ()


@dataclass(frozen=True, slots=True, eq=False)
class Scalar(Node):
    """
    A leaf value: string, number, boolean or null.

    Examples:
        Scalar("hello")
        Scalar(42)        # stored as 42.0
        Scalar(True)
        Scalar(None)
    """
    value: Union[str, float, bool, None]

    def __post_init__(self):
        v = self.value
        if isinstance(v, int) and not isinstance(v, bool):
            object.__setattr__(self, "value", float(v))
        elif not isinstance(v, (str, float, bool, type(None))):
            raise TypeError(f"Unsupported scalar value: {v!r}")

    @property
    def type_name(self) -> str:
        v = self.value
        if v is None:
            return "null"
        if isinstance(v, bool):  # before float
            return "boolean"
        if isinstance(v, float):
            return "number"
        return "string"

    @property
    def is_number(self) -> bool:
        return self.type_name == "number"

    @property
    def is_boolean(self) -> bool:
        return self.type_name == "boolean"

    def __eq__(self, other) -> bool:
        if not isinstance(other, Scalar):
            return NotImplemented
        if self.type_name != other.type_name:
            return False
        if self.is_number and math.isnan(self.value) and math.isnan(other.value):
            return True
        return self.value == other.value

    def __hash__(self) -> int:
        return hash((self.type_name, self.value))

    def __repr__(self) -> str:
        return f"Scalar({self.value!r})"


@dataclass(frozen=True, slots=True, eq=False)
class Array(Node):
    """An ordered sequence of nodes."""
    items: tuple

    def __init__(self, items=()):
        object.__setattr__(self, "items", tuple(items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Array):
            return NotImplemented
        return self.items == other.items

    def __repr__(self) -> str:
        if len(self.items) <= 5:
            return f"Array({list(self.items)})"
        return f"Array([{self.items[0]!r}, ..., {self.items[-1]!r}] len={len(self.items)})"


@dataclass(frozen=True, slots=True, eq=False)
class Object(Node):
    """
    An ordered mapping of string keys to nodes.

    Keys are unique; insertion order is part of the structure and takes
    part in equality.
    """
    entries: dict

    def __init__(self, entries=None):
        object.__setattr__(self, "entries", dict(entries or {}))

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key) -> bool:
        return key in self.entries

    def get(self, key: str) -> Optional[Node]:
        return self.entries.get(key)

    def with_entry(self, key: str, value: Node) -> "Object":
        """Copy with `key` set.  An existing key keeps its position."""
        entries = dict(self.entries)
        entries[key] = value
        return Object(entries)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Object):
            return NotImplemented
        return list(self.entries.items()) == list(other.entries.items())

    def __repr__(self) -> str:
        if len(self.entries) <= 3:
            return f"Object({self.entries})"
        return f"Object({{...}} len={len(self.entries)})"


class Kind(Flag):
    """Facets present on an XmlElement."""
    HAS_ATTRIBUTES = auto()
    HAS_CHILDREN = auto()
    HAS_TEXT = auto()


EMPTY_KIND = Kind(0)


@dataclass(frozen=True, slots=True, eq=False)
class XmlElement(Node):
    """
    An XML element.

    `children` maps a tag name to either one XmlElement or, when the tag
    repeats at this level, an Array of XmlElement in document order.
    `text` is the element's trimmed, coerced text content, or None.
    """
    tag: str
    attributes: dict
    children: dict
    text: Optional[Scalar]

    def __init__(self, tag: str, attributes=None, children=None,
                 text: Optional[Scalar] = None):
        object.__setattr__(self, "tag", tag)
        object.__setattr__(self, "attributes", dict(attributes or {}))
        object.__setattr__(self, "children", dict(children or {}))
        object.__setattr__(self, "text", text)

    @property
    def kind(self) -> Kind:
        kind = EMPTY_KIND
        if self.attributes:
            kind |= Kind.HAS_ATTRIBUTES
        if self.children:
            kind |= Kind.HAS_CHILDREN
        if self.text is not None and to_text(self.text) != "":
            kind |= Kind.HAS_TEXT
        return kind

    def with_attribute(self, name: str, value: Scalar) -> "XmlElement":
        attributes = dict(self.attributes)
        attributes[name] = value
        return XmlElement(self.tag, attributes, self.children, self.text)

    def with_child(self, tag: str, child: Node) -> "XmlElement":
        children = dict(self.children)
        children[tag] = child
        return XmlElement(self.tag, self.attributes, children, self.text)

    def without_child(self, tag: str) -> "XmlElement":
        children = {k: v for k, v in self.children.items() if k != tag}
        return XmlElement(self.tag, self.attributes, children, self.text)

    def with_text(self, text: Optional[Scalar]) -> "XmlElement":
        return XmlElement(self.tag, self.attributes, self.children, text)

    def __eq__(self, other) -> bool:
        if not isinstance(other, XmlElement):
            return NotImplemented
        return (self.tag == other.tag
                and list(self.attributes.items()) == list(other.attributes.items())
                and list(self.children.items()) == list(other.children.items())
                and self.text == other.text)

    def __repr__(self) -> str:
        parts = [repr(self.tag)]
        if self.attributes:
            parts.append(f"attributes={self.attributes}")
        if self.children:
            parts.append(f"children={list(self.children)}")
        if self.text is not None:
            parts.append(f"text={self.text!r}")
        return f"XmlElement({', '.join(parts)})"


# ═══════════════════════════════════════════════════════════════════
#  NUMBERS AND TEXT
# ═══════════════════════════════════════════════════════════════════

_DECIMAL = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_RADIX = re.compile(r"0([xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)")
_RADIX_BASE = {"x": 16, "o": 8, "b": 2}


def parse_number(text: str) -> Optional[float]:
    """
    Parse `text` the way JavaScript's Number() would, or return None.

    Surrounding whitespace is ignored.  Unlike Number(), a blank string
    is NOT a number (Number("") is 0 in JavaScript).  Accepted forms:
    decimal with optional exponent, 0x / 0o / 0b literals, and signed
    Infinity.
    """
    s = text.strip()
    if not s:
        return None
    if _DECIMAL.fullmatch(s):
        return float(s)
    m = _RADIX.fullmatch(s)
    if m:
        digits = m.group(1)
        return float(int(digits[1:], _RADIX_BASE[digits[0].lower()]))
    if s in ("Infinity", "+Infinity"):
        return math.inf
    if s == "-Infinity":
        return -math.inf
    return None


def format_number(value: float) -> str:
    """Render a number like JavaScript's String(n)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""

    # Shortest round-trip digits from repr, as (digits, n): value = 0.digits × 10ⁿ
    mantissa, _, exp = repr(abs(value)).partition("e")
    whole, _, frac = mantissa.partition(".")
    digits = whole + frac
    n = len(whole) + int(exp or 0)
    stripped = digits.lstrip("0")
    n -= len(digits) - len(stripped)
    digits = stripped.rstrip("0")
    k = len(digits)

    if k <= n <= 21:
        return sign + digits + "0" * (n - k)
    if 0 < n <= 21:
        return sign + digits[:n] + "." + digits[n:]
    if -6 < n <= 0:
        return sign + "0." + "0" * -n + digits
    e = n - 1
    exponent = f"e{'+' if e >= 0 else '-'}{abs(e)}"
    if k == 1:
        return sign + digits + exponent
    return sign + digits[0] + "." + digits[1:] + exponent


def coerce_text(raw: str) -> Scalar:
    """
    Infer a typed scalar from raw text (ENV values, XML attributes/text).

        "true" / "false"     →  Boolean
        numeric, non-empty   →  Number
        anything else        →  String
    """
    if raw == "true":
        return Scalar(True)
    if raw == "false":
        return Scalar(False)
    number = parse_number(raw)
    if number is not None:
        return Scalar(number)
    return Scalar(raw)


def to_text(scalar: Scalar) -> str:
    """Stringify a scalar (booleans as true/false, null as null)."""
    v = scalar.value
    if v is None:
        return "null"
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, float):
        return format_number(v)
    return v


def stringify(node: Optional[Node]) -> str:
    """
    Comparable text form of any node.

    Scalars use to_text; an XmlElement stands for its text content;
    containers render as compact JSON.
    """
    if node is None:
        return ""
    if isinstance(node, Scalar):
        return to_text(node)
    if isinstance(node, XmlElement) and not node.children:
        return "" if node.text is None else to_text(node.text)
    return json.dumps(to_plain(node), separators=(",", ":"), ensure_ascii=False)


def to_plain(node: Node) -> Any:
    """
    Convert a node to plain Python data (dict / list / scalars).

    Integral numbers come back as int so JSON output reads `2`, not `2.0`.
    An XmlElement becomes a dict holding its attributes under
    "@attributes", its text under "#text" and its children by tag.
    """
    if isinstance(node, Scalar):
        v = node.value
        if isinstance(v, float) and math.isfinite(v) and v.is_integer() and abs(v) < 1e21:
            return int(v)
        return v
    if isinstance(node, Array):
        return [to_plain(item) for item in node.items]
    if isinstance(node, Object):
        return {k: to_plain(v) for k, v in node.entries.items()}
    if isinstance(node, XmlElement):
        result: dict = {}
        if node.attributes:
            result["@attributes"] = {k: to_plain(v) for k, v in node.attributes.items()}
        if node.text is not None:
            result["#text"] = to_plain(node.text)
        for tag, child in node.children.items():
            result[tag] = to_plain(child)
        return result
    raise TypeError(f"Unknown node type: {type(node)}")


def from_plain(obj: Any) -> Node:
    """
    Convert plain Python data to a node.

    Mapping:
        None / bool / int / float / str  →  Scalar
        list / tuple                     →  Array
        dict                             →  Object (keys stringified)

    Nested structures are converted recursively.
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return Scalar(obj)
    if isinstance(obj, (list, tuple)):
        return Array(from_plain(item) for item in obj)
    if isinstance(obj, dict):
        return Object({str(k): from_plain(v) for k, v in obj.items()})
    raise TypeError(f"Cannot convert {type(obj).__name__} to a node")
