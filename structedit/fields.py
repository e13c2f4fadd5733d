"""
structedit.fields — Form field descriptors.

A renderer needs to know, for every editable value in a tree, what kind
of input to draw, what to call it and which path to submit it under.
generate_fields() walks a tree and answers that without touching any UI
code; the paths it hands out are exactly the ones extract_changes()
understands.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .core import Array, Node, Object, Scalar, XmlElement, stringify, to_plain
from .paths import Attr, FieldPath


class FieldType(Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    XML_HEADING = "xml-heading"
    XML_VALUE = "xml-value"
    XML_ATTRIBUTES = "xml-attributes"


@dataclass
class FieldSpec:
    key: str
    path: FieldPath
    label: str
    field_type: FieldType
    value: Any = None
    children: list = field(default_factory=list)
    attributes: list = field(default_factory=list)

    @property
    def name(self) -> str:
        """The form field name, i.e. the textual path."""
        return self.path.format()


def format_label(key: str) -> str:
    """
    Human readable label for a key.

        "maxRetries"   → "Max Retries"
        "db_host"      → "Db host"
        "@timeout"     → "Timeout"
    """
    label = key[1:] if key.startswith("@") else key
    label = re.sub(r"([a-z])([A-Z])", r"\1 \2", label)
    label = label[:1].upper() + label[1:]
    label = label.replace("_", " ")
    return re.sub(r"\s+", " ", label).strip()


def _scalar_type(scalar: Scalar) -> FieldType:
    if scalar.is_boolean:
        return FieldType.BOOLEAN
    if scalar.is_number:
        return FieldType.NUMBER
    return FieldType.TEXT


def _attribute_fields(element: XmlElement, path: FieldPath) -> list:
    return [FieldSpec(key=name, path=path.child(Attr(name)), label=format_label(name),
                      field_type=_scalar_type(value), value=to_plain(value))
            for name, value in element.attributes.items()]


def _element_field(key: str, element: XmlElement, path: FieldPath) -> FieldSpec:
    attributes = _attribute_fields(element, path)
    if element.children:
        return FieldSpec(key, path, format_label(key), FieldType.XML_HEADING,
                         children=_child_fields(element.children, path),
                         attributes=attributes)
    if element.text is None and attributes:
        return FieldSpec(key, path, format_label(key), FieldType.XML_ATTRIBUTES,
                         attributes=attributes)
    text = "" if element.text is None else stringify(element.text)
    return FieldSpec(key, path, format_label(key), FieldType.XML_VALUE,
                     value=text, attributes=attributes)


def create_field(key: str, node: Node, path: FieldPath) -> FieldSpec:
    if isinstance(node, XmlElement):
        return _element_field(key, node, path)
    if isinstance(node, Array):
        if all(isinstance(item, Scalar) for item in node.items):
            return FieldSpec(key, path, format_label(key), FieldType.ARRAY,
                             value=[stringify(item) for item in node.items])
        # Repeated elements or nested containers: one group per position.
        children = [create_field(f"{key} {position + 1}", item, path.child(position))
                    for position, item in enumerate(node.items)]
        return FieldSpec(key, path, format_label(key), FieldType.OBJECT, children=children)
    if isinstance(node, Object):
        return FieldSpec(key, path, format_label(key), FieldType.OBJECT,
                         children=_child_fields(node.entries, path))
    return FieldSpec(key, path, format_label(key), _scalar_type(node), value=to_plain(node))


def _child_fields(entries: dict, path: FieldPath) -> list:
    return [create_field(key, value, path.child(key)) for key, value in entries.items()]


def generate_fields(tree: Node, path: Optional[FieldPath] = None) -> list:
    """
    Field descriptors for every entry of `tree`.

    For an XML document the root's attributes come first, then its
    children.  A scalar tree yields a single field at the root path.
    """
    path = path or FieldPath()
    if isinstance(tree, XmlElement):
        return _attribute_fields(tree, path) + _child_fields(tree.children, path)
    if isinstance(tree, Object):
        return _child_fields(tree.entries, path)
    return [create_field(path.format(), tree, path)]
