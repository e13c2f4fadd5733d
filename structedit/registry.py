"""
structedit.registry — Format detection and codec lookup.

`resolve` decides what a file is from its name and, for the ambiguous
".config" extension, from its content:

    .json   → JSON          .xml → XML          .env → ENV
    .config → sniffed:
        starts with { or [ and parses as JSON   → JSON
        starts with <                           → XML
        ≥ 50% of meaningful lines are KEY=...   → ENV
        otherwise                               → CONFIG (read as XML)

Any other extension is treated as JSON.

A CodecRegistry maps format keys to codec factories.  Keys are
case-insensitive; new formats can be registered at runtime.
"""

import json
import logging
import re
import threading
from enum import Enum
from typing import Callable, Optional, Union

from .errors import UnsupportedFormatError
from .env_format import EnvCodec
from .formats import Codec, JsonCodec
from .xml_format import XmlCodec


logger = logging.getLogger(__name__)

ENV_LINE_THRESHOLD = 0.5

_ENV_LINE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*\s*=")


class FormatKind(str, Enum):
    JSON = "json"
    XML = "xml"
    ENV = "env"
    CONFIG = "config"

    @property
    def display_name(self) -> str:
        return self.value.upper()

    @property
    def mime_type(self) -> str:
        if self in (FormatKind.XML, FormatKind.CONFIG):
            return "application/xml"
        if self is FormatKind.ENV:
            return "text/plain"
        return "application/json"

    @property
    def extensions(self) -> tuple:
        return (f".{self.value}",)


def _extension(filename: str) -> str:
    # ".env" has no stem; it is still an env file.  A bare name has no extension.
    name = filename.lower().replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1]


def looks_like_env(content: str) -> bool:
    """True when at least half of the non-blank, non-comment lines are KEY=..."""
    lines = [line.strip() for line in content.split("\n")]
    lines = [line for line in lines if line and not line.startswith("#")]
    if not lines:
        return False
    matching = sum(1 for line in lines if _ENV_LINE.match(line))
    return matching >= len(lines) * ENV_LINE_THRESHOLD


def _sniff_config(content: str) -> FormatKind:
    trimmed = content.strip()
    if trimmed.startswith(("{", "[")):
        try:
            json.loads(trimmed)
            return FormatKind.JSON
        except ValueError:
            pass
    if trimmed.startswith("<"):
        return FormatKind.XML
    if looks_like_env(trimmed):
        return FormatKind.ENV
    return FormatKind.CONFIG


def resolve(filename: str, content: Optional[str] = None) -> FormatKind:
    """Decide the format of `filename`, sniffing `content` for .config files."""
    extension = _extension(filename)
    if extension == "config":
        kind = _sniff_config(content) if content else FormatKind.CONFIG
        logger.debug("%s sniffed as %s", filename, kind.value)
        return kind
    if extension == "xml":
        return FormatKind.XML
    if extension == "env":
        return FormatKind.ENV
    return FormatKind.JSON


CodecFactory = Callable[[], Codec]


class CodecRegistry:
    """
    Format key → codec factory.

    Lookups hand out a fresh codec per call.  Registration takes a lock
    so a registry can be extended while other threads read from it.
    """

    def __init__(self, factories: Optional[dict] = None):
        self._factories: dict = {}
        self._lock = threading.Lock()
        for key, factory in (factories or {}).items():
            self.register(key, factory)

    @classmethod
    def with_defaults(cls) -> "CodecRegistry":
        return cls({
            FormatKind.JSON.value: JsonCodec,
            FormatKind.XML.value: XmlCodec,
            FormatKind.ENV.value: EnvCodec,
            FormatKind.CONFIG.value: XmlCodec,
        })

    def register(self, key: Union[str, FormatKind], factory: CodecFactory) -> None:
        normalized = self._normalize(key)
        with self._lock:
            replaced = normalized in self._factories
            self._factories[normalized] = factory
        logger.debug("%s codec for %r", "replaced" if replaced else "registered", normalized)

    def create(self, key: Union[str, FormatKind]) -> Codec:
        normalized = self._normalize(key)
        factory = self._factories.get(normalized)
        if factory is None:
            raise UnsupportedFormatError(normalized)
        return factory()

    def codec_for(self, filename: str, content: Optional[str] = None) -> Codec:
        """Resolve the format of a file and return its codec."""
        return self.create(resolve(filename, content))

    def keys(self) -> list:
        return list(self._factories)

    def __contains__(self, key) -> bool:
        return self._normalize(key) in self._factories

    @staticmethod
    def _normalize(key: Union[str, FormatKind]) -> str:
        if isinstance(key, FormatKind):
            return key.value
        return key.lower()


default_registry = CodecRegistry.with_defaults()
