"""
structedit.formats — Codec contract and the JSON codec.

A codec is a parse/serialize pair for one textual format:

    codec.parse(text)      → Node
    codec.serialize(node)  → text

Codecs are stateless; the registry (structedit.registry) hands out a
fresh instance per lookup.
"""

import json
import math

from .core import Array, Node, Object, Scalar, XmlElement, from_plain, to_plain
from .errors import EmptyContentError, FormatSyntaxError, SerializationError


JSON_INDENT = 2


class Codec:
    """Base class for format codecs.  Not instantiated directly."""

    #: registry key of the format this codec handles
    name = ""

    def parse(self, text: str) -> Node:
        raise NotImplementedError

    def serialize(self, tree: Node) -> str:
        raise NotImplementedError

    def _require_content(self, text: str) -> None:
        if not text or not text.strip():
            raise EmptyContentError()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# ═══════════════════════════════════════════════════════════════════
#  JSON
# ═══════════════════════════════════════════════════════════════════

def _reject_constant(name: str):
    # json.loads accepts NaN / Infinity; JSON itself does not.
    raise ValueError(f"Unexpected token {name}")


def _check_finite(node: Node) -> None:
    if isinstance(node, Scalar):
        if node.is_number and not math.isfinite(node.value):
            raise SerializationError(
                f"Failed to serialize JSON: non-finite number {node.value!r}")
    elif isinstance(node, Array):
        for item in node.items:
            _check_finite(item)
    elif isinstance(node, Object):
        for value in node.entries.values():
            _check_finite(value)
    elif isinstance(node, XmlElement):
        for value in node.attributes.values():
            _check_finite(value)
        if node.text is not None:
            _check_finite(node.text)
        for child in node.children.values():
            _check_finite(child)


class JsonCodec(Codec):
    """
    JSON text ↔ tree.

    Output is always pretty-printed with two-space indentation; key
    order is preserved.
    """
    name = "json"

    def parse(self, text: str) -> Node:
        self._require_content(text)
        try:
            data = json.loads(text, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise FormatSyntaxError(f"Invalid JSON format: {e.msg}",
                                    line=e.lineno, column=e.colno) from e
        except ValueError as e:
            raise FormatSyntaxError(f"Invalid JSON format: {e}") from e
        return from_plain(data)

    def serialize(self, tree: Node) -> str:
        _check_finite(tree)
        try:
            return json.dumps(to_plain(tree), indent=JSON_INDENT,
                              ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Failed to serialize JSON: {e}") from e


def from_json(text: str) -> Node:
    """Parse a JSON string into a tree."""
    return JsonCodec().parse(text)


def to_json(tree: Node) -> str:
    """Serialize a tree to pretty-printed JSON."""
    return JsonCodec().serialize(tree)
