"""
structedit.updater — Handing changes to a byte-level updater.

Serializing a whole tree rewrites the whole file.  An external
non-destructive updater can instead splice a single new value into the
original text, leaving every other byte alone.  This module defines the
contract such an updater must meet and feeds it a change list, one
change at a time, in the order extract_changes() produced them.
"""

import logging
from typing import Protocol, Sequence, Union, runtime_checkable

from .core import Node, stringify
from .registry import FormatKind


logger = logging.getLogger(__name__)


@runtime_checkable
class Updater(Protocol):
    def apply_patch(self, format: str, original_text: str, path: str,
                    new_value: str) -> str:
        """Return `original_text` with the value at `path` replaced by `new_value`."""
        ...


def render_value(node: Node) -> str:
    """
    Text handed to the updater for a new value.

    Strings go as-is, booleans as true/false, null as null, numbers the
    way JavaScript prints them, arrays and objects as compact JSON.
    """
    return stringify(node)


def forward_changes(updater: Updater, kind: Union[FormatKind, str], text: str,
                    changes: Sequence) -> str:
    """Fold `changes` through `updater`, starting from `text`."""
    fmt = kind.value if isinstance(kind, FormatKind) else kind.lower()
    for change in changes:
        path = change.path.format()
        logger.debug("forwarding %s change at %s", fmt, path)
        text = updater.apply_patch(fmt, text, path, render_value(change.new_value))
    return text
