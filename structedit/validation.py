"""
structedit.validation — Syntax checks that report where the problem is.

validate() never raises for bad input: it answers with a
ValidationResult whose line/column (1-based) point at the first problem,
so an editor can underline it.
"""

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional, Union

from .env_format import EXPORT_PREFIX
from .registry import FormatKind


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    message: str = ""
    line: Optional[int] = None
    column: Optional[int] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(True)


def _validate_json(text: str) -> ValidationResult:
    try:
        json.loads(text)
    except json.JSONDecodeError as e:
        return ValidationResult(False, e.msg, e.lineno, e.colno)
    return ValidationResult.ok()


def _validate_xml(text: str) -> ValidationResult:
    try:
        ET.fromstring(text)
    except ET.ParseError as e:
        line, column = e.position
        return ValidationResult(False, str(e), line, column + 1)
    return ValidationResult.ok()


def _validate_env(text: str) -> ValidationResult:
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lead = len(line) - len(line.lstrip())
        body = stripped
        if body.startswith(EXPORT_PREFIX):
            lead += len(EXPORT_PREFIX)
            body = body[len(EXPORT_PREFIX):]
            lead += len(body) - len(body.lstrip())
            body = body.lstrip()
        eq = body.find("=")
        if eq < 0:
            return ValidationResult(False, "Expected '=' after key", lineno, lead + len(body) + 1)
        if not body[:eq].strip():
            return ValidationResult(False, "Empty key", lineno, lead + 1)
        value = body[eq + 1:].strip()
        if value[:1] in ("'", '"') and (len(value) < 2 or value[-1] != value[0]):
            column = lead + eq + 1 + (len(body[eq + 1:]) - len(body[eq + 1:].lstrip())) + 1
            return ValidationResult(False, "Unterminated quoted value", lineno, column)
    return ValidationResult.ok()


_VALIDATORS = {
    FormatKind.JSON: _validate_json,
    FormatKind.XML: _validate_xml,
    FormatKind.CONFIG: _validate_xml,
    FormatKind.ENV: _validate_env,
}


def validate(kind: Union[FormatKind, str], text: str) -> ValidationResult:
    """Check `text` as `kind` (json, xml, config or env)."""
    try:
        kind = FormatKind(kind.lower() if isinstance(kind, str) else kind)
    except ValueError:
        return ValidationResult(False, f"Unsupported file type: {kind}")
    return _VALIDATORS[kind](text)
