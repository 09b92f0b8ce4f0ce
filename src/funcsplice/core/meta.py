"""Metadata codec: the single-line provenance header of staged artifacts.

Format (first line of every staged artifact)::

    # FUNC_META | src:<abs-path> | src_sum:<digest> | orig:<name> | edit:<name> | orig_sum:<digest>

Fields are looked up by name, never by position, and unknown fields are
carried through untouched. Values may not contain ``|``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from funcsplice.core.errors import ArtifactNotFound
from funcsplice.core.fileops import read_text, write_atomic

HEADER_TAG = "# FUNC_META"
_SEP = " | "

FIELD_ORDER: tuple[str, ...] = ("src", "src_sum", "orig", "edit", "orig_sum")


def _field_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"\|\s*{re.escape(name)}:([^|]*)")


@dataclass
class MetadataHeader:
    src: str
    src_sum: str
    orig: str
    edit: str
    orig_sum: str
    extra: dict[str, str] = field(default_factory=dict)

    def fields(self) -> list[tuple[str, str]]:
        core = [(name, getattr(self, name)) for name in FIELD_ORDER]
        return core + list(self.extra.items())

    def encode(self) -> str:
        return encode(self.fields())

    @classmethod
    def parse(cls, line: str) -> MetadataHeader:
        """Build a header from *line*; missing core fields become ''."""
        values = parse_fields(line)
        core = {name: values.pop(name, "") for name in FIELD_ORDER}
        return cls(**core, extra=values)


# ------------------------------------------------------------------
# Line-level codec
# ------------------------------------------------------------------


def is_header(line: str) -> bool:
    return line.lstrip().startswith(HEADER_TAG)


def encode(fields: list[tuple[str, str]]) -> str:
    """Render ordered *fields* into one header line (no trailing newline)."""
    parts = [HEADER_TAG] + [f"{key}:{value}" for key, value in fields]
    return _SEP.join(parts)


def decode(header_line: str, name: str) -> str | None:
    """Return the value of field *name* in *header_line*, or None if absent."""
    if not is_header(header_line):
        return None
    m = _field_re(name).search(header_line)
    if m is None:
        return None
    return m.group(1).strip()


def parse_fields(header_line: str) -> dict[str, str]:
    """Return every ``key:value`` field of *header_line* in order."""
    result: dict[str, str] = {}
    if not is_header(header_line):
        return result
    for segment in header_line.split("|")[1:]:
        key, sep, value = segment.strip().partition(":")
        if sep:
            result[key.strip()] = value.strip()
    return result


def replace_field(header_line: str, name: str, value: str) -> str:
    """Return *header_line* with field *name* set to *value*.

    The field is appended if it is not present yet.
    """
    pattern = _field_re(name)
    if pattern.search(header_line):
        return pattern.sub(lambda _m: f"| {name}:{value} ", header_line, count=1).rstrip()
    return f"{header_line.rstrip()}{_SEP}{name}:{value}"


# ------------------------------------------------------------------
# File-level operations
# ------------------------------------------------------------------


def split_artifact(text: str) -> tuple[str | None, str]:
    """Split artifact *text* into ``(header_line, body_text)``.

    Only a first line carrying the header tag counts as a header.
    """
    first, _, rest = text.partition("\n")
    if is_header(first):
        return first.rstrip("\r"), rest
    return None, text


def prepend(header_line: str, path: Path) -> None:
    """Insert *header_line* as the new first line of *path*."""
    existing = read_text(path)
    write_atomic(path, f"{header_line}\n{existing}")


def read_header(path: Path) -> str | None:
    """Return the header line of artifact *path*, or None if it has none.

    Raises:
        ArtifactNotFound: *path* does not exist.
    """
    if not path.is_file():
        raise ArtifactNotFound(path)
    header, _ = split_artifact(read_text(path))
    return header


def decode_field(path: Path, name: str) -> str | None:
    """Read one field from the header of artifact *path*."""
    header = read_header(path)
    if header is None:
        return None
    return decode(header, name)


def amend_field(path: Path, name: str, value: str) -> str:
    """Rewrite field *name* of the header of *path* in place.

    Returns the new header line.

    Raises:
        ArtifactNotFound: *path* does not exist or has no header.
    """
    if not path.is_file():
        raise ArtifactNotFound(path)
    header, body = split_artifact(read_text(path))
    if header is None:
        raise ArtifactNotFound(path, kind="metadata header")
    updated = replace_field(header, name, value)
    write_atomic(path, f"{updated}\n{body}")
    return updated
