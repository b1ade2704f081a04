"""
SLP token type 1 message models and decoding.

An SLP message lives in the OP_RETURN output (vout 0) of a transaction and is
made of data pushes:

    <lokad_id 'SLP\\x00'> <token_type 1> <transaction_type> <fields...>

GENESIS:
    ticker, name, document_uri, document_hash, decimals, mint_baton_vout,
    initial_quantity (10 chunks in total)
MINT:
    token_id, mint_baton_vout, additional_quantity (6 chunks in total)
SEND:
    token_id, token_output_quantity1 .. token_output_quantity19

Quantities are 8-byte big-endian unsigned integers. Decoding is strict: any
deviation from the layout raises MessageFormatError with a specific kind.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Annotated, Literal

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from slpcore.constants import (
    DOCUMENT_HASH_LENGTH,
    LOKAD_ID,
    MAX_BATON_VOUT,
    MAX_DECIMALS,
    MAX_SEND_OUTPUTS,
    MAX_TOKEN_QUANTITY,
    MIN_BATON_VOUT,
    TOKEN_ID_LENGTH,
    TOKEN_TYPE_1,
)
from slpcore.script import ScriptFormatError, extract_op_return_chunks

TOKEN_ID_PATTERN = r"^[0-9a-f]{64}$"


class TransactionKind(str, Enum):
    GENESIS = "GENESIS"
    MINT = "MINT"
    SEND = "SEND"


# Wire tag -> kind. Anything not listed here is not an SLP transaction type.
TRANSACTION_KINDS: dict[str, TransactionKind] = {
    "GENESIS": TransactionKind.GENESIS,
    "MINT": TransactionKind.MINT,
    "SEND": TransactionKind.SEND,
}


class MessageErrorKind(str, Enum):
    BAD_SCRIPT = "bad_script"
    NO_PROTOCOL_MARKER = "no_protocol_marker"
    MISSING_FIELD = "missing_field"
    BAD_FIELD_LENGTH = "bad_field_length"
    UNSUPPORTED_VERSION = "unsupported_version"
    UNKNOWN_KIND = "unknown_kind"
    WRONG_CHUNK_COUNT = "wrong_chunk_count"
    DECIMALS_OUT_OF_RANGE = "decimals_out_of_range"
    BAD_HASH_LENGTH = "bad_hash_length"
    BATON_VOUT_TOO_LOW = "baton_vout_too_low"
    BAD_ID_LENGTH = "bad_id_length"
    BAD_QUANTITY_LENGTH = "bad_quantity_length"
    TOO_FEW_OR_TOO_MANY_OUTPUTS = "too_few_or_too_many_outputs"


class MessageFormatError(ValueError):
    """Raised when a script is not a valid SLP message."""

    def __init__(self, kind: MessageErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class UnsupportedTokenType(MessageFormatError):
    """Raised when the token type field is well formed but not type 1."""

    def __init__(self, token_type: int) -> None:
        super().__init__(
            MessageErrorKind.UNSUPPORTED_VERSION, f"Unsupported token type: {token_type}"
        )
        self.token_type = token_type


class GenesisMessage(BaseModel):
    """Creates a new token. Its token id is the id of the carrying transaction."""

    kind: Literal[TransactionKind.GENESIS] = TransactionKind.GENESIS
    ticker: str = ""
    name: str = ""
    document_uri: str = ""
    document_hash: bytes = b""
    decimals: int = Field(default=0, ge=0, le=MAX_DECIMALS)
    baton_vout: int | None = Field(default=None, ge=MIN_BATON_VOUT, le=MAX_BATON_VOUT)
    initial_quantity: int = Field(..., ge=0, le=MAX_TOKEN_QUANTITY)

    model_config = {"frozen": True}

    @field_validator("document_hash")
    @classmethod
    def validate_document_hash(cls, v: bytes) -> bytes:
        if len(v) not in (0, DOCUMENT_HASH_LENGTH):
            raise ValueError("Document hash must be empty or 32 bytes")
        return v

    @property
    def contains_baton(self) -> bool:
        return self.baton_vout is not None


class MintMessage(BaseModel):
    """Mints additional supply of an existing token; spends that token's baton."""

    kind: Literal[TransactionKind.MINT] = TransactionKind.MINT
    token_id: str = Field(..., pattern=TOKEN_ID_PATTERN)
    baton_vout: int | None = Field(default=None, ge=MIN_BATON_VOUT, le=MAX_BATON_VOUT)
    quantity: int = Field(..., ge=0, le=MAX_TOKEN_QUANTITY)

    model_config = {"frozen": True}

    @property
    def contains_baton(self) -> bool:
        return self.baton_vout is not None


class SendMessage(BaseModel):
    """
    Transfers tokens to outputs 1..19.

    output_quantities[0] is always 0: it stands for vout 0, the OP_RETURN
    output itself, so output_quantities[n] is the amount sent to vout n.
    """

    kind: Literal[TransactionKind.SEND] = TransactionKind.SEND
    token_id: str = Field(..., pattern=TOKEN_ID_PATTERN)
    output_quantities: tuple[int, ...]

    model_config = {"frozen": True}

    @field_validator("output_quantities")
    @classmethod
    def validate_output_quantities(cls, v: tuple[int, ...]) -> tuple[int, ...]:
        if not 2 <= len(v) <= MAX_SEND_OUTPUTS + 1:
            raise ValueError(f"SEND must have between 1 and {MAX_SEND_OUTPUTS} token outputs")
        if v[0] != 0:
            raise ValueError("output_quantities[0] must be 0")
        for qty in v:
            if qty < 0 or qty > MAX_TOKEN_QUANTITY:
                raise ValueError(f"Token quantity out of range: {qty}")
        return v

    @classmethod
    def build(cls, token_id: str, amounts: Sequence[int]) -> SendMessage:
        """Create a SEND from the real output amounts (vout 1 onwards)."""
        return cls(token_id=token_id, output_quantities=(0, *amounts))

    @property
    def token_outputs(self) -> tuple[int, ...]:
        return self.output_quantities[1:]

    @property
    def total_output_quantity(self) -> int:
        return sum(self.output_quantities)


SlpMessage = Annotated[GenesisMessage | MintMessage | SendMessage, Field(discriminator="kind")]


def parse_chunk_to_int(
    chunk: bytes | None, min_len: int, max_len: int, raise_on_null: bool = False
) -> int | None:
    """
    Parse a chunk as an unsigned big-endian integer.

    For an empty chunk:
        min_len <= 0: returns 0
        raise_on_null is False: returns None
        raise_on_null is True: raises MessageFormatError
    """
    data = chunk or b""
    if min_len <= len(data) <= max_len:
        return int.from_bytes(data, "big")
    if not data and not raise_on_null:
        return None
    raise MessageFormatError(MessageErrorKind.BAD_FIELD_LENGTH, "Field has wrong length")


def parse_quantity(chunk: bytes | None) -> int:
    """
    Parse an 8-byte big-endian token quantity.

    The value is reassembled from its two 32-bit halves as high * 2**32 + low.
    """
    if chunk is None or len(chunk) != 8:
        raise MessageFormatError(
            MessageErrorKind.BAD_QUANTITY_LENGTH, "Token quantities must be 8 bytes each"
        )
    high = int.from_bytes(chunk[:4], "big")
    low = int.from_bytes(chunk[4:], "big")
    return high * 2**32 + low


def _decode_text(chunk: bytes | None) -> str:
    # Validators must not require decodable strings
    return chunk.decode("utf-8", errors="replace") if chunk else ""


def _parse_transaction_kind(chunk: bytes | None) -> TransactionKind:
    try:
        text = (chunk or b"").decode("ascii")
    except UnicodeDecodeError:
        raise MessageFormatError(MessageErrorKind.UNKNOWN_KIND, "Bad transaction type") from None

    kind = TRANSACTION_KINDS.get(text)
    if kind is None:
        raise MessageFormatError(MessageErrorKind.UNKNOWN_KIND, f"Bad transaction type: {text!r}")
    return kind


def _parse_baton_vout(chunk: bytes | None) -> int | None:
    baton_vout = parse_chunk_to_int(chunk, 1, 1)
    if baton_vout is not None and baton_vout < MIN_BATON_VOUT:
        raise MessageFormatError(
            MessageErrorKind.BATON_VOUT_TOO_LOW, "Mint baton cannot be on vout=0 or 1"
        )
    return baton_vout


def _parse_token_id(chunk: bytes | None) -> str:
    if chunk is None or len(chunk) != TOKEN_ID_LENGTH:
        raise MessageFormatError(MessageErrorKind.BAD_ID_LENGTH, "token_id is wrong length")
    return chunk.hex()


def _decode_genesis(chunks: list[bytes | None]) -> GenesisMessage:
    if len(chunks) != 10:
        raise MessageFormatError(
            MessageErrorKind.WRONG_CHUNK_COUNT, "GENESIS with incorrect number of parameters"
        )

    document_hash = chunks[6] or b""
    if len(document_hash) not in (0, DOCUMENT_HASH_LENGTH):
        raise MessageFormatError(
            MessageErrorKind.BAD_HASH_LENGTH, "Token document hash is incorrect length"
        )

    decimals = parse_chunk_to_int(chunks[7], 1, 1, raise_on_null=True)
    if decimals is None or decimals > MAX_DECIMALS:
        raise MessageFormatError(MessageErrorKind.DECIMALS_OUT_OF_RANGE, "Too many decimals")

    baton_vout = _parse_baton_vout(chunks[8])

    return GenesisMessage(
        ticker=_decode_text(chunks[3]),
        name=_decode_text(chunks[4]),
        document_uri=_decode_text(chunks[5]),
        document_hash=document_hash,
        decimals=decimals,
        baton_vout=baton_vout,
        initial_quantity=parse_quantity(chunks[9]),
    )


def _decode_mint(chunks: list[bytes | None]) -> MintMessage:
    if len(chunks) != 6:
        raise MessageFormatError(
            MessageErrorKind.WRONG_CHUNK_COUNT, "MINT with incorrect number of parameters"
        )

    token_id = _parse_token_id(chunks[3])
    baton_vout = _parse_baton_vout(chunks[4])

    quantity = parse_quantity(chunks[5])

    return MintMessage(token_id=token_id, baton_vout=baton_vout, quantity=quantity)


def _decode_send(chunks: list[bytes | None]) -> SendMessage:
    if len(chunks) < 4:
        raise MessageFormatError(MessageErrorKind.WRONG_CHUNK_COUNT, "SEND with too few parameters")

    token_id = _parse_token_id(chunks[3])

    # Explicit 0 for vout=0, the OP_RETURN output carrying this message
    output_quantities = [0]
    output_quantities.extend(parse_quantity(chunk) for chunk in chunks[4:])

    if len(output_quantities) < 2:
        raise MessageFormatError(
            MessageErrorKind.TOO_FEW_OR_TOO_MANY_OUTPUTS, "Missing output amounts"
        )
    if len(output_quantities) > MAX_SEND_OUTPUTS + 1:
        raise MessageFormatError(
            MessageErrorKind.TOO_FEW_OR_TOO_MANY_OUTPUTS,
            f"More than {MAX_SEND_OUTPUTS} output amounts",
        )

    return SendMessage(token_id=token_id, output_quantities=tuple(output_quantities))


def decode_message(script: bytes) -> GenesisMessage | MintMessage | SendMessage:
    """
    Decode an OP_RETURN output script into an SLP message.

    Args:
        script: Raw output script (starting with OP_RETURN)

    Returns:
        The decoded GENESIS, MINT or SEND message

    Raises:
        MessageFormatError: If the script is not a valid type 1 SLP message
    """
    try:
        chunks = extract_op_return_chunks(script)
    except ScriptFormatError as e:
        raise MessageFormatError(MessageErrorKind.BAD_SCRIPT, f"Bad OP_RETURN: {e}") from e

    if not chunks or chunks[0] != LOKAD_ID:
        raise MessageFormatError(MessageErrorKind.NO_PROTOCOL_MARKER, "No SLP")

    if len(chunks) == 1:
        raise MessageFormatError(MessageErrorKind.MISSING_FIELD, "Missing token_type")

    token_type = parse_chunk_to_int(chunks[1], 1, 2, raise_on_null=True)
    if token_type != TOKEN_TYPE_1:
        raise UnsupportedTokenType(token_type if token_type is not None else 0)

    if len(chunks) == 2:
        raise MessageFormatError(MessageErrorKind.MISSING_FIELD, "Missing SLP transaction type")

    kind = _parse_transaction_kind(chunks[2])
    if kind == TransactionKind.GENESIS:
        return _decode_genesis(chunks)
    elif kind == TransactionKind.MINT:
        return _decode_mint(chunks)
    elif kind == TransactionKind.SEND:
        return _decode_send(chunks)
    raise MessageFormatError(MessageErrorKind.UNKNOWN_KIND, f"Bad transaction type: {kind}")


def try_decode_message(script: bytes) -> GenesisMessage | MintMessage | SendMessage | None:
    """Decode an SLP message, returning None if the script is not one."""
    try:
        return decode_message(script)
    except MessageFormatError as e:
        logger.debug(f"Not an SLP message ({e.kind.value}): {e}")
        return None
