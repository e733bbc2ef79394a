"""
cppcheckdata_copyprop/source_rewriter.py
════════════════════════════════════════

Mutable view of source files: edits are recorded against the original
text and applied when the rewritten text is requested.

Positions follow Cppcheck: lines and columns are 1-based and count
characters.  Ranges are half-open character offsets into the original
text of a file.  Edits of one file must not overlap; an overlapping edit
raises :class:`~.errors.OverlappingEditError` and leaves the buffer
unchanged.

Usage Example
─────────────
    rw = SourceRewriter()
    rw.add_source("foo.c", "int f() { int x = 5; return x; }")
    start = rw.offset("foo.c", 1, 29)
    rw.replace_text("foo.c", start, start + 1, "5")
    print(rw.rewritten_text("foo.c"))

License: MIT
"""

from __future__ import annotations

import bisect
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import OverlappingEditError, SourceLocationError

logger = logging.getLogger(__name__)

Edit = Tuple[int, int, str]


class SourceBuffer:
    """Original text of one file plus the edits recorded against it."""

    def __init__(self, file: str, text: str) -> None:
        self.file = file
        self.text = text
        self._line_starts: List[int] = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)
        self._edits: List[Edit] = []

    @property
    def edits(self) -> List[Edit]:
        return list(self._edits)

    def offset(self, line: int, column: int) -> int:
        """Offset of a 1-based (line, column) position."""
        if line < 1 or line > len(self._line_starts):
            raise SourceLocationError(f"{self.file}: no line {line}")
        start = self._line_starts[line - 1]
        end = (self._line_starts[line] - 1
               if line < len(self._line_starts) else len(self.text))
        off = start + column - 1
        if column < 1 or off > end:
            raise SourceLocationError(f"{self.file}:{line}: no column {column}")
        return off

    def slice(self, start: int, end: int) -> str:
        return self.text[start:end]

    def replace(self, start: int, end: int, text: str) -> None:
        if start < 0 or end < start or end > len(self.text):
            raise SourceLocationError(
                f"{self.file}: invalid range [{start}, {end})")
        starts = [e[0] for e in self._edits]
        i = bisect.bisect_right(starts, start)
        for other in self._edits[max(i - 1, 0):i + 1]:
            # two insertions at the same point are kept in order
            if other[0] < end and start < other[1]:
                raise OverlappingEditError(self.file, start, end, other)
            if other[0] == start and (other[1] > other[0] or end > start):
                raise OverlappingEditError(self.file, start, end, other)
        self._edits.insert(i, (start, end, text))

    def rewritten(self) -> str:
        out: List[str] = []
        pos = 0
        for start, end, text in self._edits:
            out.append(self.text[pos:start])
            out.append(text)
            pos = end
        out.append(self.text[pos:])
        return "".join(out)

    def translate_offset(self, original_offset: int) -> int:
        """Offset in the rewritten text of an unedited original offset."""
        new_offset = original_offset
        for start, end, text in self._edits:
            if start >= original_offset:
                break
            if end <= original_offset:
                new_offset += len(text) - (end - start)
            else:
                raise SourceLocationError(
                    f"{self.file}: offset {original_offset} lies inside an edit")
        return new_offset


class SourceRewriter:
    """Edits of every source file touched by a transformation.

    Files are read lazily from disk unless their text was registered with
    :meth:`add_source`.  Paths are compared after normalisation.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._buffers: Dict[str, SourceBuffer] = {}

    @staticmethod
    def _key(file: str) -> str:
        return os.path.normpath(file)

    def add_source(self, file: str, text: str) -> SourceBuffer:
        buf = SourceBuffer(file, text)
        self._buffers[self._key(file)] = buf
        return buf

    def buffer(self, file: str) -> SourceBuffer:
        key = self._key(file)
        buf = self._buffers.get(key)
        if buf is None:
            path = Path(file)
            try:
                text = path.read_text(encoding=self.encoding)
            except OSError as exc:
                raise SourceLocationError(f"cannot read {file}: {exc}") from exc
            buf = self._buffers[key] = SourceBuffer(file, text)
        return buf

    def offset(self, file: str, line: int, column: int) -> int:
        return self.buffer(file).offset(line, column)

    def original_text(self, file: str, start: int, end: int) -> str:
        return self.buffer(file).slice(start, end)

    def replace_text(self, file: str, start: int, end: int, text: str) -> None:
        """Replace the original characters ``[start, end)`` of *file*."""
        self.buffer(file).replace(start, end, text)
        logger.debug("%s: replace [%d, %d) with %r", file, start, end, text)

    def replace_range(self, file: str, line: int, column: int,
                      length: int, text: str) -> Tuple[int, int]:
        start = self.offset(file, line, column)
        self.replace_text(file, start, start + length, text)
        return start, start + length

    def rewritten_text(self, file: str) -> str:
        return self.buffer(file).rewritten()

    def modified_files(self) -> List[str]:
        return [b.file for b in self._buffers.values() if b.edits]

    def write_back(self, suffix: Optional[str] = None) -> List[Path]:
        """Write every modified file, next to the original when *suffix*
        is given (``foo.c`` -> ``foo.c<suffix>``), in place otherwise."""
        written: List[Path] = []
        for buf in self._buffers.values():
            if not buf.edits:
                continue
            dest = Path(buf.file + suffix) if suffix else Path(buf.file)
            dest.write_text(buf.rewritten(), encoding=self.encoding)
            logger.info("wrote %s (%d edit(s))", dest, len(buf.edits))
            written.append(dest)
        return written
