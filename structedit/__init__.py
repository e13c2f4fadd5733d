"""
structedit
==========

Edit structured configuration files through generated forms, then write
the changes back.

    codec = default_registry.codec_for("app.json")
    tree = codec.parse(text)
    changes = extract_changes(tree, {"server.port": "8080"})
    new_text = codec.serialize(apply_changes(tree, changes))

JSON, XML, ENV-style KEY=VALUE files and the ambiguous ".config"
extension (sniffed from its content) all parse into one tree type, are
addressed by one field-path syntax (`server.port`, `tags.2`,
`connection.@timeout`) and go through the same diff and patch steps.
"""

from structedit.core import (
    # Types
    Node,
    Scalar,
    Array,
    Object,
    XmlElement,
    Kind,
    # Helpers
    coerce_text,
    parse_number,
    format_number,
    to_text,
    stringify,
    to_plain,
    from_plain,
)
from structedit.errors import (
    StructEditError,
    EmptyContentError,
    FormatSyntaxError,
    UnsupportedFormatError,
    SerializationError,
    PathNotFoundError,
    InvalidPathError,
)
from structedit.paths import Key, Index, Attr, FieldPath, lookup
from structedit.formats import Codec, JsonCodec, from_json, to_json
from structedit.env_format import EnvCodec
from structedit.xml_format import XmlCodec
from structedit.registry import FormatKind, CodecRegistry, default_registry, resolve
from structedit.changes import (
    ScalarEdit, ArraySnapshot, Change,
    extract_changes, apply_changes,
)
from structedit.fields import FieldType, FieldSpec, generate_fields, format_label
from structedit.validation import ValidationResult, validate
from structedit.updater import Updater, forward_changes, render_value

__version__ = "0.1.0"
__all__ = [
    "Node", "Scalar", "Array", "Object", "XmlElement", "Kind",
    "coerce_text", "parse_number", "format_number", "to_text", "stringify",
    "to_plain", "from_plain",
    "StructEditError", "EmptyContentError", "FormatSyntaxError",
    "UnsupportedFormatError", "SerializationError", "PathNotFoundError",
    "InvalidPathError",
    "Key", "Index", "Attr", "FieldPath", "lookup",
    "Codec", "JsonCodec", "EnvCodec", "XmlCodec", "from_json", "to_json",
    "FormatKind", "CodecRegistry", "default_registry", "resolve",
    "ScalarEdit", "ArraySnapshot", "Change", "extract_changes", "apply_changes",
    "FieldType", "FieldSpec", "generate_fields", "format_label",
    "ValidationResult", "validate",
    "Updater", "forward_changes", "render_value",
]
