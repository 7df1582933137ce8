"""Hex and ASCII dump of a byte string, sixteen bytes to a line."""

from __future__ import annotations

_BYTES_PER_LINE = 16
_LEADER = "   "
_GAP = " " * 9


def _printable(byte: int) -> str:
    return chr(byte) if 32 <= byte <= 128 else "."


def hex_dump(data: bytes) -> str:
    """Return the dump of ``data``: hex column, then the printable characters."""
    lines = []
    for offset in range(0, len(data), _BYTES_PER_LINE):
        chunk = data[offset:offset + _BYTES_PER_LINE]
        hex_part = "".join(f" {byte:02X}" for byte in chunk)
        padding = "   " * (_BYTES_PER_LINE - len(chunk))
        text = "".join(_printable(byte) for byte in chunk)
        lines.append(f"{_LEADER}{hex_part}{padding}{_GAP}{text}\n")
    return "".join(lines)