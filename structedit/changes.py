"""
structedit.changes — From form edits to a new tree.

Two steps, mirroring diff and patch:

    extract_changes(tree, edits)   → [Change, ...]
    apply_changes(tree, changes)   → new tree

EDITS
─────
A form submits a flat mapping of field path → raw value.  Text, number
and checkbox inputs produce a ScalarEdit (one string); list widgets
produce an ArraySnapshot (the full list of item strings).  Plain str and
list values are accepted as shorthand for the two.

The caller owns checkbox semantics: an unchecked box that drops out of
the submitted form must be passed explicitly as ScalarEdit("false").

CHANGES
───────
A scalar edit is coerced to the runtime type of the value it replaces
(Number stays Number when the text is numeric, Boolean accepts "true"
and "on"), then compared with the original by stringified form.  Only
real differences become Changes, in the caller's edit order.  Arrays
are replaced wholesale, never element by element.

PATCHING
────────
apply_changes never touches its input.  Each change rebuilds the
containers along its path and shares everything else.  Missing Object
levels are created; Arrays are never extended.  A path that cannot be
reached raises PathNotFoundError and the partially built tree is simply
dropped.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union

from .core import (
    Array, Node, Object, Scalar, XmlElement,
    parse_number, stringify,
)
from .errors import PathNotFoundError
from .paths import Attr, FieldPath, Index, Key, as_path, lookup


logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  EDITS AND CHANGES
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class ScalarEdit:
    """Raw text from a single input field."""
    text: str


@dataclass(frozen=True, slots=True)
class ArraySnapshot:
    """Full contents of a list-editing widget, one string per item."""
    items: tuple

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))


RawEdit = Union[ScalarEdit, ArraySnapshot]


@dataclass(frozen=True, slots=True)
class Change:
    """Set the value at `path` to `new_value`."""
    path: FieldPath
    new_value: Node

    @property
    def value_text(self) -> str:
        """The new value as text; arrays and objects as compact JSON."""
        return stringify(self.new_value)

    def __repr__(self) -> str:
        return f"Change({self.path.format() or '(root)'} = {self.new_value!r})"


def as_edit(raw) -> RawEdit:
    if isinstance(raw, (ScalarEdit, ArraySnapshot)):
        return raw
    if isinstance(raw, str):
        return ScalarEdit(raw)
    if isinstance(raw, (list, tuple)):
        return ArraySnapshot(tuple(str(item) for item in raw))
    raise TypeError(f"Unsupported edit value: {raw!r}")


# ═══════════════════════════════════════════════════════════════════
#  DIFF
# ═══════════════════════════════════════════════════════════════════

def _leaf(node: Optional[Node]) -> Optional[Node]:
    """The value a form field shows for `node`: a text-only element stands for its text."""
    if isinstance(node, XmlElement) and not node.children:
        return node.text if node.text is not None else Scalar("")
    return node


def coerce_to(raw: str, original: Optional[Node]) -> Scalar:
    """
    Coerce form text to the type of the value it replaces.

    Non-numeric text for a Number field is kept as a String rather than
    rejected; any other original type yields a String.
    """
    if isinstance(original, Scalar):
        if original.is_number:
            number = parse_number(raw)
            return Scalar(raw) if number is None else Scalar(number)
        if original.is_boolean:
            return Scalar(raw in ("true", "on"))
    return Scalar(raw)


def _scalar_change(path: FieldPath, edit: ScalarEdit,
                   original: Optional[Node]) -> Optional[Change]:
    current = _leaf(original)
    candidate = coerce_to(edit.text, current)
    if current is not None and stringify(current) == stringify(candidate):
        return None
    return Change(path, candidate)


def _array_change(path: FieldPath, edit: ArraySnapshot,
                  original: Optional[Node]) -> Optional[Change]:
    before = original.items if isinstance(original, Array) else ()
    same_length = len(before) == len(edit.items)
    if same_length and all(stringify(_leaf(old)) == new
                           for old, new in zip(before, edit.items)):
        return None

    template = _leaf(before[0]) if before else None
    items = []
    for position, text in enumerate(edit.items):
        like = _leaf(before[position]) if position < len(before) else template
        items.append(coerce_to(text, like))
    return Change(path, Array(items))


def extract_changes(original: Node,
                    edits: Mapping[Union[FieldPath, str], Union[RawEdit, str, Sequence[str]]]
                    ) -> list:
    """
    Compare submitted form edits with the tree they were generated from.

    Returns the Changes needed to make every edited path hold its edit,
    in the order the edits were given.  Unchanged fields produce nothing.
    """
    changes: list = []
    for raw_path, raw_edit in edits.items():
        path = as_path(raw_path)
        edit = as_edit(raw_edit)
        current = lookup(original, path)
        if isinstance(edit, ArraySnapshot):
            change = _array_change(path, edit, current)
        else:
            change = _scalar_change(path, edit, current)
        if change is not None:
            logger.debug("%s: %s -> %s", path, stringify(_leaf(current)), change.value_text)
            changes.append(change)
    return changes


# ═══════════════════════════════════════════════════════════════════
#  PATCH
# ═══════════════════════════════════════════════════════════════════

def _merge_elements(current: Node, value: Array) -> Node:
    """
    Lay new item values over repeated XML elements.

    Scalar items become the text of the element at the same position,
    which keeps that element's attributes; extra items get a bare
    element with the same tag.
    """
    existing = list(current.items) if isinstance(current, Array) else [current]
    tag = next(e.tag for e in existing if isinstance(e, XmlElement))
    merged = []
    for position, item in enumerate(value.items):
        if isinstance(item, Scalar):
            base = existing[position] if position < len(existing) else None
            if not isinstance(base, XmlElement):
                base = XmlElement(tag)
            merged.append(base.with_text(item))
        else:
            merged.append(item)
    if len(merged) == 1:
        return merged[0]
    return Array(merged)


def _holds_elements(node: Node) -> bool:
    if isinstance(node, XmlElement):
        return True
    return isinstance(node, Array) and any(isinstance(i, XmlElement) for i in node.items)


def _replace(current: Node, value: Node) -> Node:
    if isinstance(value, Array) and _holds_elements(current):
        return _merge_elements(current, value)
    if isinstance(current, XmlElement) and isinstance(value, Scalar):
        return current.with_text(value)
    return value


def _set(node: Node, segments: tuple, value: Node, path: FieldPath) -> Node:
    if not segments:
        return _replace(node, value)
    head, rest = segments[0], segments[1:]

    if isinstance(head, Attr):
        if isinstance(node, Object):
            return _set(node, (Key(str(head)),), value, path)
        if not isinstance(node, XmlElement):
            raise PathNotFoundError(path, "attributes exist only on XML elements")
        if not isinstance(value, Scalar):
            raise PathNotFoundError(path, "an attribute can only hold a scalar")
        return node.with_attribute(head.name, value)

    if isinstance(node, Array):
        if not isinstance(head, Index):
            raise PathNotFoundError(path, f"{head!s} is not an array index")
        if head.index >= len(node.items):
            raise PathNotFoundError(path, f"index {head.index} is past the end")
        items = list(node.items)
        items[head.index] = _set(items[head.index], rest, value, path)
        return Array(items)

    if isinstance(node, Object):
        key = str(head)
        child = node.entries.get(key)
        if child is None:
            if not rest:
                return node.with_entry(key, value)
            child = Object()
        return node.with_entry(key, _set(child, rest, value, path))

    if isinstance(node, XmlElement):
        if isinstance(head, Index):
            raise PathNotFoundError(path, "an XML element has no positional children")
        child = node.children.get(head.name)
        if child is None:
            child = XmlElement(head.name)
        updated = _set(child, rest, value, path)
        if isinstance(updated, Array) and not updated.items:
            return node.without_child(head.name)
        return node.with_child(head.name, updated)

    raise PathNotFoundError(path, f"cannot descend into {stringify(node)!r}")


def apply_changes(original: Node, changes: Sequence[Change]) -> Node:
    """
    Apply `changes` in order and return the resulting tree.

    `original` is left untouched; on PathNotFoundError nothing of the
    partial result escapes.
    """
    tree = original
    for change in changes:
        tree = _set(tree, change.path.segments, change.new_value, change.path)
        logger.debug("applied %r", change)
    return tree
