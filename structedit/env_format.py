"""
structedit.env_format — KEY=VALUE files.

Parsing is line oriented and forgiving: blank lines and `#` comments are
skipped, lines that do not carry a key before their first `=` are
ignored.  Values lose one layer of matching quotes and are then coerced
(true/false → Boolean, numeric → Number, otherwise String).

Serialization writes one KEY=VALUE line per entry, in order.  Nested
values cannot be expressed in ENV syntax, so they are written as JSON
inside double quotes, announced by a comment line.
"""

import json
import logging

from .core import Array, Node, Object, Scalar, XmlElement, coerce_text, to_plain, to_text
from .errors import SerializationError
from .formats import Codec


logger = logging.getLogger(__name__)

EXPORT_PREFIX = "export "


def unquote(raw: str) -> str:
    """Strip one layer of matching single or double quotes."""
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return raw[1:-1]
    return raw


def split_assignment(line: str):
    """
    Split one ENV line into (key, raw_value).

    Returns None for blank lines, comments, and lines with no key before
    the first `=`.  A leading `export ` is not part of the key.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    if stripped.startswith(EXPORT_PREFIX):
        stripped = stripped[len(EXPORT_PREFIX):].lstrip()
    eq = stripped.find("=")
    if eq <= 0:
        return None
    key = stripped[:eq].strip()
    if not key:
        return None
    return key, stripped[eq + 1:].strip()


class EnvCodec(Codec):
    name = "env"

    def parse(self, text: str) -> Node:
        self._require_content(text)
        entries: dict = {}
        for lineno, line in enumerate(text.splitlines(), start=1):
            parsed = split_assignment(line)
            if parsed is None:
                if line.strip() and not line.strip().startswith("#"):
                    logger.debug("ignoring ENV line %d without assignment: %r", lineno, line)
                continue
            key, raw = parsed
            entries[key] = coerce_text(unquote(raw))
        return Object(entries)

    def serialize(self, tree: Node) -> str:
        if not isinstance(tree, Object):
            raise SerializationError(
                f"ENV output needs a top-level object, got {type(tree).__name__}")
        lines = []
        for key, value in tree.entries.items():
            if isinstance(value, (Object, Array, XmlElement)):
                lines.append(f'# Complex object for key "{key}"')
                try:
                    encoded = json.dumps(to_plain(value), separators=(",", ":"),
                                         ensure_ascii=False, allow_nan=False)
                except ValueError as e:
                    raise SerializationError(f"Failed to serialize ENV key {key!r}: {e}") from e
                lines.append(f'{key}="{encoded}"')
                continue
            text = to_text(value) if isinstance(value, Scalar) else str(value)
            if " " in text or "#" in text:
                text = f'"{text}"'
            lines.append(f"{key}={text}")
        return "\n".join(lines) + "\n" if lines else ""
