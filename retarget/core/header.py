"""
Header records consumed by the retarget engine.

Only height, timestamp and bits matter for retargeting, so a ``HeaderRecord``
carries just those three fields. ``RetargetWindow`` is a read-only, height
indexed view over a contiguous run of records.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "HEADER_PREFIX_SIZE",
    "HeaderFormatError",
    "HeaderRecord",
    "RetargetWindow",
    "load_headers",
]

# version(4) prev(32) merkle(32) height(4) reserved(28) time(4) bits(4) nonce(32)
HEADER_PREFIX_SIZE = 140
_HEIGHT_OFFSET = 68
_TIME_OFFSET = 100
_BITS_OFFSET = 104


class HeaderFormatError(Exception):
    pass


@dataclass(frozen=True, slots=True)
class HeaderRecord:
    height: int
    timestamp: int
    bits: int

    @classmethod
    def parse(cls, raw: bytes) -> HeaderRecord:
        """Extract height/timestamp/bits from a serialized block header.

        The Equihash solution that follows the fixed prefix is ignored.
        """
        if len(raw) < HEADER_PREFIX_SIZE:
            raise HeaderFormatError(f"Header too small ({len(raw)} < {HEADER_PREFIX_SIZE} bytes)")
        height = int.from_bytes(raw[_HEIGHT_OFFSET : _HEIGHT_OFFSET + 4], "little")
        timestamp = int.from_bytes(raw[_TIME_OFFSET : _TIME_OFFSET + 4], "little")
        bits = int.from_bytes(raw[_BITS_OFFSET : _BITS_OFFSET + 4], "little")
        return cls(height=height, timestamp=timestamp, bits=bits)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HeaderRecord:
        try:
            height = int(data["height"])
            timestamp = int(data["timestamp"])
            bits = data["bits"]
        except KeyError as exc:
            raise HeaderFormatError(f"Header missing field {exc.args[0]!r}") from exc
        except (TypeError, ValueError) as exc:
            raise HeaderFormatError(f"Invalid header field: {exc}") from exc
        if isinstance(bits, str):
            try:
                bits = int(bits, 16)
            except ValueError as exc:
                raise HeaderFormatError(f"Invalid bits {bits!r}") from exc
        if not isinstance(bits, int) or isinstance(bits, bool) or not (0 <= bits <= 0xFFFFFFFF):
            raise HeaderFormatError(f"bits out of range: {bits!r}")
        if height < 0:
            raise HeaderFormatError(f"Negative height {height}")
        return cls(height=height, timestamp=timestamp, bits=bits)

    def to_dict(self) -> dict[str, Any]:
        return {"height": self.height, "timestamp": self.timestamp, "bits": f"{self.bits:08x}"}


class RetargetWindow:
    """Read-only view of header records keyed by height."""

    def __init__(self, records: Iterable[HeaderRecord]):
        by_height: dict[int, HeaderRecord] = {}
        for record in records:
            if record.height in by_height:
                raise HeaderFormatError(f"Duplicate header at height {record.height}")
            by_height[record.height] = record
        self._records = by_height

    def header_at(self, height: int) -> HeaderRecord:
        return self._records[height]

    __getitem__ = header_at

    def __contains__(self, height: object) -> bool:
        return height in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[HeaderRecord]:
        for height in self.heights():
            yield self._records[height]

    def heights(self) -> list[int]:
        return sorted(self._records)

    @property
    def tip(self) -> HeaderRecord | None:
        if not self._records:
            return None
        return self._records[max(self._records)]

    def __repr__(self) -> str:
        heights = self.heights()
        if not heights:
            return "RetargetWindow(empty)"
        return f"RetargetWindow({heights[0]}..{heights[-1]}, {len(heights)} headers)"


def load_headers(path: Path) -> RetargetWindow:
    """Load header history from a JSON list or ``{"headers": [...]}`` document."""
    try:
        with open(path, "rb") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise HeaderFormatError(f"{path}: invalid JSON ({exc})") from exc
    if isinstance(data, dict):
        data = data.get("headers")
    if not isinstance(data, list):
        raise HeaderFormatError(f"{path}: expected a list of headers")
    records = []
    for entry in data:
        if not isinstance(entry, dict):
            raise HeaderFormatError(f"{path}: header entries must be objects")
        records.append(HeaderRecord.from_dict(entry))
    return RetargetWindow(records)
