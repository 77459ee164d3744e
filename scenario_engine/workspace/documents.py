"""Document read/write surface for scenario files.

Provides a line/offset addressable in-memory ``Document`` plus stores that
load and persist documents (file system backed, or in-memory for hosts that
keep their own buffers).
"""

import asyncio
import codecs
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from ..discovery.file_scanner import find_scenario_files, matches_patterns
from ..errors import DocumentNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position."""
    line: int
    character: int


@dataclass(frozen=True)
class Range:
    """Zero-based half-open text range."""
    start_line: int
    start_char: int
    end_line: int
    end_char: int

    @property
    def start(self) -> Position:
        return Position(self.start_line, self.start_char)

    @property
    def end(self) -> Position:
        return Position(self.end_line, self.end_char)


@dataclass(frozen=True)
class TextEdit:
    """Replacement of an offset range with new text."""
    start: int
    end: int
    new_text: str


class Document:
    """In-memory text of one scenario document.

    Lines are split on ``\\n``; a trailing ``\\r`` is kept out of line text
    but preserved in the underlying text so CRLF documents round-trip.
    """

    def __init__(self, uri: Union[str, Path], text: str, version: int = 0):
        self.uri = str(uri)
        self._text = text
        self.version = version
        self._line_starts: Optional[list[int]] = None

    def __repr__(self) -> str:
        return f"Document({self.uri!r}, version={self.version})"

    @property
    def path(self) -> Path:
        return Path(self.uri)

    @property
    def text(self) -> str:
        return self._text

    @text.setter
    def text(self, value: str) -> None:
        if value != self._text:
            self._text = value
            self._line_starts = None
            self.version += 1

    @property
    def eol(self) -> str:
        return "\r\n" if "\r\n" in self._text else "\n"

    def _starts(self) -> list[int]:
        if self._line_starts is None:
            starts = [0]
            index = self._text.find("\n")
            while index != -1:
                starts.append(index + 1)
                index = self._text.find("\n", index + 1)
            self._line_starts = starts
        return self._line_starts

    @property
    def line_count(self) -> int:
        return len(self._starts())

    @property
    def lines(self) -> list[str]:
        return [line.rstrip("\r") for line in self._text.split("\n")]

    def line_at(self, line: int) -> str:
        starts = self._starts()
        start = starts[line]
        end = starts[line + 1] - 1 if line + 1 < len(starts) else len(self._text)
        return self._text[start:end].rstrip("\r")

    def offset_at(self, line: int, character: int = 0) -> int:
        starts = self._starts()
        if line >= len(starts):
            return len(self._text)
        line_text = self.line_at(line)
        return starts[line] + min(max(character, 0), len(line_text))

    def position_at(self, offset: int) -> Position:
        starts = self._starts()
        offset = min(max(offset, 0), len(self._text))
        line = 0
        low, high = 0, len(starts) - 1
        while low <= high:
            mid = (low + high) // 2
            if starts[mid] <= offset:
                line = mid
                low = mid + 1
            else:
                high = mid - 1
        return Position(line, offset - starts[line])

    def line_range(self, line: int) -> Range:
        """Range from the first non-whitespace character to the end of line."""
        text = self.line_at(line)
        start = len(text) - len(text.lstrip())
        if start == len(text):
            start = 0
        return Range(line, start, line, len(text))

    def full_line_range(self, line: int) -> Range:
        return Range(line, 0, line, len(self.line_at(line)))

    def apply_edits(self, edits: Iterable[TextEdit]) -> bool:
        """Apply non-overlapping edits; returns True if the text changed."""
        ordered = sorted(edits, key=lambda edit: (edit.start, edit.end), reverse=True)
        text = self._text
        for edit in ordered:
            text = text[:edit.start] + edit.new_text + text[edit.end:]
        if text == self._text:
            return False
        self.text = text
        return True

    def replace(self, start: int, end: int, new_text: str) -> bool:
        return self.apply_edits([TextEdit(start, end, new_text)])


class DocumentStore:
    """Abstract async document surface."""

    async def read(self, uri: Union[str, Path]) -> str:
        raise NotImplementedError

    async def write(self, uri: Union[str, Path], text: str) -> None:
        raise NotImplementedError

    async def open(self, uri: Union[str, Path]) -> Document:
        return Document(uri, await self.read(uri))

    async def save(self, document: Document) -> None:
        await self.write(document.uri, document.text)

    async def list_scenario_files(self, root: Union[str, Path], patterns: Iterable[str]) -> list[Path]:
        raise NotImplementedError


class FileSystemDocumentStore(DocumentStore):
    """Reads and writes UTF-8 files without blocking the event loop.

    Reads drop a leading byte-order mark; writes keep the one already on disk.
    """

    async def read(self, uri: Union[str, Path]) -> str:
        path = Path(uri)
        try:
            return await asyncio.to_thread(_read_text, path)
        except FileNotFoundError as e:
            raise DocumentNotFoundError(f"Scenario file not found: {path}") from e

    async def write(self, uri: Union[str, Path], text: str) -> None:
        path = Path(uri)
        await asyncio.to_thread(_write_text, path, text)
        logger.debug("Wrote %s (%d chars)", path, len(text))

    async def list_scenario_files(self, root: Union[str, Path], patterns: Iterable[str]) -> list[Path]:
        return await asyncio.to_thread(find_scenario_files, root, list(patterns))


class InMemoryDocumentStore(DocumentStore):
    """Document store backed by a dict of uri -> text."""

    def __init__(self, files: Optional[dict[str, str]] = None):
        self.files: dict[str, str] = {str(k): v for k, v in (files or {}).items()}

    async def read(self, uri: Union[str, Path]) -> str:
        key = str(uri)
        if key not in self.files:
            raise DocumentNotFoundError(f"Scenario file not found: {key}")
        return self.files[key]

    async def write(self, uri: Union[str, Path], text: str) -> None:
        self.files[str(uri)] = text

    async def list_scenario_files(self, root: Union[str, Path], patterns: Iterable[str]) -> list[Path]:
        root = Path(root)
        found = []
        for uri in self.files:
            path = Path(uri)
            if matches_patterns(path, patterns) and (root == path.parent or root in path.parents):
                found.append(path)
        return sorted(found, key=lambda p: str(p).lower())


def _read_text(path: Path) -> str:
    # newline="" keeps CRLF line endings intact
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return f.read()


def _has_bom(path: Path) -> bool:
    try:
        with open(path, "rb") as f:
            return f.read(len(codecs.BOM_UTF8)) == codecs.BOM_UTF8
    except FileNotFoundError:
        return False


def _write_text(path: Path, text: str) -> None:
    # An existing byte-order mark survives the rewrite
    encoding = "utf-8-sig" if _has_bom(path) else "utf-8"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write(text)
