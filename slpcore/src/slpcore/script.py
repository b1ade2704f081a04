"""
Push-data script parsing.

Splits a raw script into its operations and extracts the pushed chunks that
follow an OP_RETURN marker. The parser is strict: anything that is not a
plain data push after the marker is rejected, since SLP messages must be
composed solely of pushes.
"""

from __future__ import annotations

from dataclasses import dataclass

from slpcore.constants import (
    OP_0,
    OP_1NEGATE,
    OP_16,
    OP_PUSHDATA1,
    OP_PUSHDATA2,
    OP_PUSHDATA4,
    OP_RESERVED,
    OP_RETURN,
)


class ScriptFormatError(ValueError):
    """Raised when a script cannot be split into valid push operations."""

    pass


@dataclass(frozen=True)
class PushOperation:
    """A single script operation with its pushed data, if any."""

    opcode: int
    data: bytes | None = None


def _read_push_length(script: bytes, offset: int, width: int) -> tuple[int, int]:
    """Read a little-endian push length prefix and return (length, new_offset)."""
    if offset + width > len(script):
        raise ScriptFormatError("truncated script")
    return int.from_bytes(script[offset : offset + width], "little"), offset + width


def get_script_operations(script: bytes) -> list[PushOperation]:
    """
    Decode a script into a list of operations.

    Opcodes 0x00-0x4b push that many bytes; OP_PUSHDATA1/2/4 read a 1/2/4-byte
    little-endian length first. Every other opcode is returned without data.

    Raises:
        ScriptFormatError: If a push runs past the end of the script
    """
    ops: list[PushOperation] = []
    offset = 0

    while offset < len(script):
        opcode = script[offset]
        offset += 1

        if opcode > OP_PUSHDATA4:
            ops.append(PushOperation(opcode))
            continue

        if opcode < OP_PUSHDATA1:
            length = opcode
        elif opcode == OP_PUSHDATA1:
            length, offset = _read_push_length(script, offset, 1)
        elif opcode == OP_PUSHDATA2:
            length, offset = _read_push_length(script, offset, 2)
        else:
            length, offset = _read_push_length(script, offset, 4)

        if offset + length > len(script):
            raise ScriptFormatError("truncated script")

        data = script[offset : offset + length] if length > 0 else None
        offset += length
        ops.append(PushOperation(opcode, data))

    return ops


def extract_op_return_chunks(
    script: bytes, *, allow_op_0: bool = False, allow_op_number: bool = False
) -> list[bytes | None]:
    """
    Extract the pushed chunks following an OP_RETURN, one per push.

    Empty pushes yield None.

    Args:
        script: Raw output script
        allow_op_0: Accept OP_0 as an empty push
        allow_op_number: Accept OP_1NEGATE and OP_1..OP_16 as one-byte chunks

    Raises:
        ScriptFormatError: On truncated scripts, a missing OP_RETURN marker or
            a disallowed opcode
    """
    ops = get_script_operations(script)

    if not ops or ops[0].opcode != OP_RETURN:
        raise ScriptFormatError("No OP_RETURN")

    chunks: list[bytes | None] = []
    for op in ops[1:]:
        data = op.data
        if op.opcode > OP_16:
            raise ScriptFormatError("Non-push opcode")
        if op.opcode > OP_PUSHDATA4:
            if op.opcode == OP_RESERVED:
                raise ScriptFormatError("Non-push opcode")
            if not allow_op_number:
                raise ScriptFormatError("OP_1NEGATE to OP_16 not allowed")
            if op.opcode == OP_1NEGATE:
                data = b"\x81"
            else:
                data = bytes([op.opcode - OP_RESERVED])
        if op.opcode == OP_0 and not allow_op_0:
            raise ScriptFormatError("OP_0 not allowed")
        chunks.append(data)

    return chunks


def push_data(data: bytes) -> bytes:
    """
    Encode data as the smallest push that is never OP_0 or a numeric opcode.

    Empty data is pushed as OP_PUSHDATA1 with a zero length.
    """
    length = len(data)
    if length == 0:
        return bytes([OP_PUSHDATA1, 0x00])
    elif length < OP_PUSHDATA1:
        return bytes([length]) + data
    elif length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    elif length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + length.to_bytes(2, "little") + data
    elif length <= 0xFFFFFFFF:
        return bytes([OP_PUSHDATA4]) + length.to_bytes(4, "little") + data
    raise ValueError(f"Push data too large: {length} bytes")
