"""
Source Locator Service.

Maps a component's class name to a Java/Kotlin file in the project tree,
reads it, and reduces it to the lines that touch the incoming Intent so the
model prompt stays small. Also offers a static scan of ``get*Extra("key")``
calls, used when no model endpoint is configured.
"""

from __future__ import annotations

import os
import re
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

import aiofiles

from ...core.config import DEFAULT_EXCLUDE_DIRS
from ...core.exceptions import SourceNotFoundError
from ...core.logging import get_logger
from ...models.command import ExtraParameter, ExtraSource, ExtraType

logger = get_logger(__name__)

SOURCE_EXTENSIONS = (".java", ".kt")

INTENT_PATTERNS = (
    "getAction", "hasAction", "setAction",
    "getCategories", "hasCategory", "addCategory",
    "getData", "setData", "getDataString", "getScheme", "getHost", "getPath", "getQueryParameter",
    "getType", "setType", "resolveType",
    "getExtras", "hasExtra", "getBundleExtra", "getParcelableExtra", "getSerializableExtra",
    "getFlags", "addFlags", "setFlags",
    "getComponent", "setComponent", "resolveActivity",
    "toUri", "parseUri",
    "putExtra", "putExtras",
)
_EXTRA_GETTER = re.compile(r"get\w*Extra\b")
_INTENT_ACCESS = re.compile(r"\b(?:intent|getIntent\(\))\??\.(?:get|set|has|add|put)", re.IGNORECASE)

_SCAN_PATTERNS = (
    # intent.getStringExtra("key") / getIntExtra("key", 0)
    re.compile(r"\bget(?P<type>\w*?)Extra\(\s*\"(?P<key>[^\"]+)\"\s*(?:,\s*(?P<default>[^),]+))?\)"),
    # intent.extras?.getString("key") / getExtras().getInt("key", 1)
    re.compile(
        r"(?:extras|getExtras\(\))\??\.get(?P<type>String|Int|Long|Float|Double|Boolean|CharSequence)"
        r"\(\s*\"(?P<key>[^\"]+)\"\s*(?:,\s*(?P<default>[^),]+))?\)"
    ),
)

_SCAN_TYPES = {
    "string": ExtraType.STRING,
    "charsequence": ExtraType.STRING,
    "int": ExtraType.INT,
    "short": ExtraType.INT,
    "byte": ExtraType.INT,
    "char": ExtraType.INT,
    "long": ExtraType.LONG,
    "float": ExtraType.FLOAT,
    "double": ExtraType.DOUBLE,
    "boolean": ExtraType.BOOL,
    "stringarray": ExtraType.STRING_ARRAY,
    "stringarraylist": ExtraType.STRING_ARRAY,
    "intarray": ExtraType.INT_ARRAY,
    "integerarraylist": ExtraType.INT_ARRAY,
    "longarray": ExtraType.LONG_ARRAY,
    "floatarray": ExtraType.FLOAT_ARRAY,
}

_TYPE_PLACEHOLDERS = {
    ExtraType.INT: "0",
    ExtraType.LONG: "0",
    ExtraType.FLOAT: "0.0",
    ExtraType.DOUBLE: "0.0",
    ExtraType.BOOL: "false",
}


class SourceLocator:
    """Finds the source file declaring a component class."""

    def __init__(self, project_root: Path, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS) -> None:
        self.project_root = Path(project_root)
        self.exclude_dirs = frozenset(exclude_dirs)
        self._by_stem: dict[str, list[Path]] | None = None

    def index(self) -> dict[str, list[Path]]:
        """Index source files by file stem; built once, on first use."""
        if self._by_stem is not None:
            return self._by_stem

        by_stem: dict[str, list[Path]] = defaultdict(list)
        for dirpath, dirnames, filenames in os.walk(self.project_root):
            dirnames[:] = sorted(d for d in dirnames if d not in self.exclude_dirs)
            for filename in sorted(filenames):
                stem, ext = os.path.splitext(filename)
                if ext.lower() in SOURCE_EXTENSIONS:
                    by_stem[stem].append(Path(dirpath) / filename)

        self._by_stem = dict(by_stem)
        logger.debug(
            "Indexed source files",
            root=str(self.project_root),
            files=sum(len(v) for v in self._by_stem.values()),
        )
        return self._by_stem

    def find(self, class_name: str, manifest_dir: Path | None = None) -> Path | None:
        """Return the best candidate source file, or None.

        The package segments become directory segments, so
        ``com.acme.x.Login`` matches ``.../com/acme/x/Login.java`` or
        ``Login.kt`` anywhere under the project root. Inner classes resolve
        to their outer class file. When no path matches, a file named after
        the simple class name is accepted if it is the only one under the
        manifest's directory.

        Args:
            class_name: Fully qualified class name.
            manifest_dir: Directory of the declaring manifest, for the fallback.

        Returns:
            Path | None: The source file, or None when absent.
        """
        outer = class_name.split("$", 1)[0]
        segments = tuple(s for s in outer.split(".") if s)
        if not segments:
            return None
        simple = segments[-1]
        candidates = self.index().get(simple, [])
        if not candidates:
            return None

        package_dirs = segments[:-1]
        matches = [
            path for path in candidates
            if path.parent.parts[len(path.parent.parts) - len(package_dirs):] == package_dirs
        ]
        if matches:
            return min(matches, key=lambda p: (len(p.parts), str(p)))

        if manifest_dir is not None:
            scoped = [p for p in candidates if _is_relative_to(p, manifest_dir)]
            if len(scoped) == 1:
                logger.debug("Matched source by file name", component=class_name, path=str(scoped[0]))
                return scoped[0]
        return None

    def locate(self, class_name: str, manifest_dir: Path | None = None) -> Path:
        """Like :meth:`find`, but signals absence with SourceNotFoundError."""
        path = self.find(class_name, manifest_dir)
        if path is None:
            raise SourceNotFoundError(message="no source file for component", class_name=class_name)
        return path


def _is_relative_to(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
    except ValueError:
        return False
    return True


async def read_source(path: Path, max_bytes: int = 512_000) -> str:
    """Read a source file without blocking the event loop."""
    async with aiofiles.open(path, "rb") as f:
        data = await f.read(max_bytes)
    return data.decode("utf-8", errors="replace")


def _is_intent_line(line: str) -> bool:
    return (
        any(pattern in line for pattern in INTENT_PATTERNS)
        or _EXTRA_GETTER.search(line) is not None
        or _INTENT_ACCESS.search(line) is not None
    )


def extract_intent_context(source: str, context_lines: int = 5, max_chars: int = 8000) -> str:
    """Reduce source text to the lines around Intent access.

    Each Intent-touching line contributes ``context_lines`` lines before it;
    a brace-delimited block opened on such a line is kept until it closes,
    followed by ``context_lines`` trailing lines. Lines are never repeated.
    When nothing Intent-related is found, the source itself is returned.
    Output is capped at ``max_chars``.

    Args:
        source: Full source text.
        context_lines: Lines of leading/trailing context.
        max_chars: Maximum excerpt length in characters.

    Returns:
        str: The excerpt.
    """
    lines = source.splitlines()
    keep: set[int] = set()
    found = False
    in_block = False
    depth = 0

    for i, line in enumerate(lines):
        if _is_intent_line(line):
            found = True
            keep.update(range(max(0, i - context_lines), i))
            if not in_block:
                in_block = True
                depth = 0

        if in_block:
            keep.add(i)
            depth += line.count("{") - line.count("}")
            if depth <= 0:
                in_block = False
                keep.update(range(i + 1, min(len(lines), i + 1 + context_lines)))

    if not found:
        return source[:max_chars]

    excerpt = "\n".join(lines[i] for i in sorted(keep))
    return excerpt[:max_chars]


def _literal(raw: str | None, extra_type: ExtraType) -> str:
    if raw is None:
        return _TYPE_PLACEHOLDERS.get(extra_type, "")
    value = raw.strip()
    if value.startswith('"') and value.endswith('"') and len(value) >= 2:
        return value[1:-1]
    # Numeric suffixes (10L, 1.5f) and booleans are literal; identifiers are not
    number = value.rstrip("LlFfDd")
    if re.fullmatch(r"-?\d+(\.\d+)?", number):
        return number
    if value in ("true", "false"):
        return value
    return _TYPE_PLACEHOLDERS.get(extra_type, "")


def scan_extras(source: str) -> list[ExtraParameter]:
    """Extract extras read with a literal key, in source order.

    Parcelable, Serializable and Bundle extras are skipped because ``am``
    cannot supply them. Duplicate (key, type) pairs are reported once.
    """
    found: list[tuple[int, ExtraParameter]] = []
    seen: set[tuple[str, ExtraType]] = set()
    for pattern in _SCAN_PATTERNS:
        for match in pattern.finditer(source):
            label = match.group("type").lower() or "string"
            extra_type = _SCAN_TYPES.get(label)
            if extra_type is None:
                continue
            key = match.group("key")
            if (key, extra_type) in seen:
                continue
            seen.add((key, extra_type))
            found.append((
                match.start(),
                ExtraParameter(
                    key=key,
                    type=extra_type,
                    example=_literal(match.group("default"), extra_type),
                    source=ExtraSource.SOURCE_SCAN,
                ),
            ))
    found.sort(key=lambda item: item[0])
    return [extra for _, extra in found]
