"""Fixed-width hex + ASCII dumps of binary values."""

BYTES_PER_LINE = 16
HEX_COLUMN_WIDTH = BYTES_PER_LINE * 3
EMPTY_MARKER = "(empty data)"


def dump(data: bytes, max_bytes: int | None = 256) -> str:
    """Render ``data`` as 16-byte lines of offset, hex and ASCII.

    Args:
        data: The raw bytes.
        max_bytes: Dump at most this many bytes and append a line
            counting the rest, or None for no limit.

    Returns:
        Lines like ``0010: 68 65 6c 6c 6f ... |hello...|`` joined by
        newlines. Empty input renders ``(empty data)``.
    """
    if not data:
        return EMPTY_MARKER

    shown = len(data) if max_bytes is None else min(len(data), max_bytes)
    lines = []
    for offset in range(0, shown, BYTES_PER_LINE):
        chunk = data[offset:min(offset + BYTES_PER_LINE, shown)]
        hex_part = "".join(f"{byte:02x} " for byte in chunk)
        ascii_part = "".join(chr(byte) if 0x20 <= byte <= 0x7E else "." for byte in chunk)
        lines.append(f"{offset:04x}: {hex_part:<{HEX_COLUMN_WIDTH}} |{ascii_part}|")

    if len(data) > shown:
        lines.append(f"... {len(data) - shown} more bytes")
    return "\n".join(lines)
