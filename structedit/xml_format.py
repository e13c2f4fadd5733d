"""
structedit.xml_format — XML documents.

Two parse strategies, chosen by the shape of the document:

    KEY/VALUE SHORTHAND
        Every direct child of the root carries both a `key` and a `value`
        attribute (.NET appSettings style):

            <appSettings><add key="x" value="1"/></appSettings>

        The document collapses to a flat Object {"x": Scalar(1.0)}.

    STRUCTURAL MAPPING
        Anything else.  Each element becomes an XmlElement; attribute
        values and trimmed text are coerced like ENV values; repeated
        child tags at one level are gathered into an Array in document
        order.

Namespace prefixes survive the trip: names are kept in their prefixed
form ("soap:Body") and declarations are kept as ordinary `xmlns`
attributes on the element that declared them.  Comments, processing
instructions and text that follows a child element (tails) are not
part of the model.

Serialization writes an XML declaration, then either the flat
appSettings form (for a scalar-only Object) or a structural
reconstruction, indented by two spaces.  An element with neither text
nor children is written self-closing.
"""

import logging
import xml.etree.ElementTree as ET

from .core import Array, Node, Object, Scalar, XmlElement, coerce_text, stringify
from .errors import FormatSyntaxError, SerializationError
from .formats import Codec


logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
KEY_VALUE_ROOT = "appSettings"
KEY_VALUE_ITEM = "add"
LEGACY_ROOT = "root"
INDENT = "  "

_XML_NS = "http://www.w3.org/XML/1998/namespace"

_ESCAPES = (
    ("&", "&amp;"),   # first, or the other entities get double-escaped
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)


def escape(text: str) -> str:
    for char, entity in _ESCAPES:
        text = text.replace(char, entity)
    return text


# ═══════════════════════════════════════════════════════════════════
#  PARSING
# ═══════════════════════════════════════════════════════════════════

def _read_document(text: str):
    """
    Run the pull parser over `text`.

    Returns the root element and a map from id(element) to the
    namespace declarations made on that element, in document order.
    """
    parser = ET.XMLPullParser(events=("start-ns", "start"))
    try:
        parser.feed(text)
        parser.close()
    except ET.ParseError as e:
        line, column = e.position
        raise FormatSyntaxError("Invalid XML format", line=line, column=column + 1) from e

    root = None
    declared: dict = {}
    pending: list = []
    for event, payload in parser.read_events():
        if event == "start-ns":
            pending.append(payload)
            continue
        if pending:
            declared[id(payload)] = pending
            pending = []
        if root is None:
            root = payload
    return root, declared


def _qualify(name: str, scope: dict) -> str:
    """Turn ElementTree's {uri}local form back into prefix:local."""
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    prefix = scope.get(uri)
    return f"{prefix}:{local}" if prefix else local


def _element_children(elem):
    # Comments and processing instructions have a callable tag.
    return [child for child in elem if isinstance(child.tag, str)]


def _is_key_value_document(root) -> bool:
    children = _element_children(root)
    return bool(children) and all(
        "key" in child.attrib and "value" in child.attrib for child in children)


def _convert(elem, declared: dict, scope: dict) -> XmlElement:
    declarations = declared.get(id(elem), ())
    if declarations:
        scope = dict(scope)
        for prefix, uri in declarations:
            scope[uri] = prefix

    attributes: dict = {}
    for prefix, uri in declarations:
        attributes[f"xmlns:{prefix}" if prefix else "xmlns"] = Scalar(uri)
    for name, value in elem.attrib.items():
        attributes[_qualify(name, scope)] = coerce_text(value)

    grouped: dict = {}
    for child in _element_children(elem):
        tag = _qualify(child.tag, scope)
        grouped.setdefault(tag, []).append(_convert(child, declared, scope))
    children = {tag: nodes[0] if len(nodes) == 1 else Array(nodes)
                for tag, nodes in grouped.items()}

    raw = (elem.text or "").strip()
    text = coerce_text(raw) if raw else None
    return XmlElement(_qualify(elem.tag, scope), attributes, children, text)


class XmlCodec(Codec):
    name = "xml"

    def parse(self, text: str) -> Node:
        self._require_content(text)
        root, declared = _read_document(text)
        if root is None:
            raise FormatSyntaxError("Invalid XML format")
        try:
            if _is_key_value_document(root):
                logger.debug("reading <%s> as a key/value document", root.tag)
                return Object({child.attrib["key"]: coerce_text(child.attrib["value"])
                               for child in _element_children(root)})
            return _convert(root, declared, {_XML_NS: "xml"})
        except (TypeError, ValueError) as e:
            raise FormatSyntaxError(f"Failed to parse XML: {e}") from e

    def serialize(self, tree: Node) -> str:
        out = [XML_DECLARATION]
        if isinstance(tree, XmlElement):
            _write_node(tree.tag, tree, 0, out)
        elif isinstance(tree, Object):
            if all(isinstance(v, Scalar) for v in tree.entries.values()):
                _write_key_values(tree, out)
            else:
                _write_node(LEGACY_ROOT, tree, 0, out)
        else:
            raise SerializationError(
                f"XML output needs an element or an object, got {type(tree).__name__}")
        return "\n".join(out)


# ═══════════════════════════════════════════════════════════════════
#  SERIALIZATION
# ═══════════════════════════════════════════════════════════════════

def _write_key_values(tree: Object, out: list) -> None:
    if not tree.entries:
        out.append(f"<{KEY_VALUE_ROOT}/>")
        return
    out.append(f"<{KEY_VALUE_ROOT}>")
    for key, value in tree.entries.items():
        out.append(f'{INDENT}<{KEY_VALUE_ITEM} key="{escape(key)}" '
                   f'value="{escape(stringify(value))}"/>')
    out.append(f"</{KEY_VALUE_ROOT}>")


def _format_attributes(attributes: dict) -> str:
    return "".join(f' {name}="{escape(stringify(value))}"'
                   for name, value in attributes.items())


def _facets(node: Node):
    """(attributes, children, text) of an element-like node."""
    if isinstance(node, XmlElement):
        return node.attributes, node.children, node.text
    # Object without kind: "@attributes" and "#text" are reserved keys.
    attrs = node.entries.get("@attributes")
    attributes = attrs.entries if isinstance(attrs, Object) else {}
    children = {k: v for k, v in node.entries.items()
                if k not in ("@attributes", "#text")}
    return attributes, children, node.entries.get("#text")


def _write_node(tag: str, node: Node, depth: int, out: list) -> None:
    pad = INDENT * depth
    if isinstance(node, Array):
        for item in node.items:
            _write_node(tag, item, depth, out)
        return
    if isinstance(node, Scalar):
        if node.value is None:
            out.append(f"{pad}<{tag}/>")
        else:
            out.append(f"{pad}<{tag}>{escape(stringify(node))}</{tag}>")
        return

    attributes, children, text = _facets(node)
    open_tag = f"<{tag}{_format_attributes(attributes)}"
    body = "" if text is None else escape(stringify(text))
    if not children and not body:
        out.append(f"{pad}{open_tag}/>")
    elif not children:
        out.append(f"{pad}{open_tag}>{body}</{tag}>")
    else:
        out.append(f"{pad}{open_tag}>{body}")
        for child_tag, child in children.items():
            _write_node(child_tag, child, depth + 1, out)
        out.append(f"{pad}</{tag}>")
