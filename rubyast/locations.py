"""Location Resolver — byte offsets to line / character-column ranges."""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable

from .nodes import Position, SourceRange


class LocationResolver:
    """Maps offsets in a UTF-8 buffer to positions and ranges.

    The scanner reports byte offsets; the reference grammar counts columns and
    offsets in characters, so every multi-byte character counts once.
    Undecodable bytes count as one replacement character per invalid sequence.
    """

    def __init__(self, buffer: bytes):
        self._buffer = buffer
        self._line_starts: list[int] = [0]
        offset = buffer.find(b"\n")
        while offset != -1:
            self._line_starts.append(offset + 1)
            offset = buffer.find(b"\n", offset + 1)

        self._char_starts: list[int] = []
        chars = 0
        for index, start in enumerate(self._line_starts):
            self._char_starts.append(chars)
            end = (
                self._line_starts[index + 1]
                if index + 1 < len(self._line_starts)
                else len(buffer)
            )
            chars += len(buffer[start:end].decode("utf-8", errors="replace"))
        self._total_chars = chars

    def _locate(self, byte_offset: int) -> tuple[int, int, int]:
        byte_offset = max(0, min(byte_offset, len(self._buffer)))
        index = bisect_right(self._line_starts, byte_offset) - 1
        prefix = self._buffer[self._line_starts[index] : byte_offset]
        column = len(prefix.decode("utf-8", errors="replace"))
        return index, column, self._char_starts[index] + column

    def position(self, byte_offset: int) -> Position:
        index, column, _ = self._locate(byte_offset)
        return Position(line=index + 1, column=column)

    def range(self, start_byte: int, end_byte: int) -> SourceRange:
        start_index, start_col, begin_pos = self._locate(start_byte)
        end_index, end_col, end_pos = self._locate(end_byte)
        return SourceRange(
            start_line=start_index + 1,
            start_col=start_col,
            end_line=end_index + 1,
            end_col=end_col,
            begin_pos=begin_pos,
            end_pos=end_pos,
        )

    def char_range(self, begin_pos: int, end_pos: int) -> SourceRange:
        """Range for character offsets, e.g. one line of a string literal."""
        start_index, start_col = self._char_locate(begin_pos)
        end_index, end_col = self._char_locate(end_pos)
        return SourceRange(
            start_line=start_index + 1,
            start_col=start_col,
            end_line=end_index + 1,
            end_col=end_col,
            begin_pos=begin_pos,
            end_pos=end_pos,
        )

    def _char_locate(self, char_offset: int) -> tuple[int, int]:
        char_offset = max(0, min(char_offset, self._total_chars))
        index = bisect_right(self._char_starts, char_offset) - 1
        return index, char_offset - self._char_starts[index]

    @staticmethod
    def span(ranges: Iterable[SourceRange | None]) -> SourceRange | None:
        """Minimal range covering every non-empty range in *ranges*."""
        result: SourceRange | None = None
        for rng in ranges:
            if rng is None:
                continue
            result = rng if result is None else result.join(rng)
        return result
