"""
Per-token-type SLP message encoders.

Encoders build the canonical OP_RETURN script for a validated message. Field
validation happens in the message models; the encoder only serializes and
enforces the relay size limit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import ValidationError

from slpcore.constants import LOKAD_ID, MAX_OP_RETURN_SIZE, OP_RETURN, TOKEN_TYPE_1
from slpcore.message import (
    GenesisMessage,
    MintMessage,
    SendMessage,
    TransactionKind,
)
from slpcore.script import push_data


class MessageEncodingError(ValueError):
    """Raised when message fields cannot be serialized."""

    pass


class MessageEncoder(ABC):
    """Builds OP_RETURN scripts for one SLP token type."""

    token_type: int

    @abstractmethod
    def encode(self, message: GenesisMessage | MintMessage | SendMessage) -> bytes:
        """Return the OP_RETURN output script carrying the message."""


class TokenType1Encoder(MessageEncoder):
    token_type = TOKEN_TYPE_1

    def encode(self, message: GenesisMessage | MintMessage | SendMessage) -> bytes:
        if isinstance(message, GenesisMessage):
            chunks = self._genesis_chunks(message)
        elif isinstance(message, MintMessage):
            chunks = self._mint_chunks(message)
        elif isinstance(message, SendMessage):
            chunks = self._send_chunks(message)
        else:
            raise MessageEncodingError(f"Cannot encode {type(message).__name__}")
        return self._chunks_to_script(chunks)

    def _header(self, kind: TransactionKind) -> list[bytes]:
        return [LOKAD_ID, bytes([self.token_type]), kind.value.encode("ascii")]

    def _genesis_chunks(self, message: GenesisMessage) -> list[bytes]:
        return self._header(message.kind) + [
            message.ticker.encode("utf-8"),
            message.name.encode("utf-8"),
            message.document_uri.encode("utf-8"),
            message.document_hash,
            bytes([message.decimals]),
            _encode_baton_vout(message.baton_vout),
            message.initial_quantity.to_bytes(8, "big"),
        ]

    def _mint_chunks(self, message: MintMessage) -> list[bytes]:
        return self._header(message.kind) + [
            bytes.fromhex(message.token_id),
            _encode_baton_vout(message.baton_vout),
            message.quantity.to_bytes(8, "big"),
        ]

    def _send_chunks(self, message: SendMessage) -> list[bytes]:
        chunks = self._header(message.kind) + [bytes.fromhex(message.token_id)]
        chunks.extend(qty.to_bytes(8, "big") for qty in message.token_outputs)
        return chunks

    def _chunks_to_script(self, chunks: list[bytes]) -> bytes:
        script = bytearray([OP_RETURN])
        for chunk in chunks:
            script.extend(push_data(chunk))

        if len(script) > MAX_OP_RETURN_SIZE:
            raise MessageEncodingError(
                f"OP_RETURN message too large: {len(script)} > {MAX_OP_RETURN_SIZE} bytes"
            )
        return bytes(script)


def _encode_baton_vout(baton_vout: int | None) -> bytes:
    return b"" if baton_vout is None else bytes([baton_vout])


_ENCODERS: dict[int, MessageEncoder] = {
    TOKEN_TYPE_1: TokenType1Encoder(),
}


def get_encoder(token_type: int = TOKEN_TYPE_1) -> MessageEncoder:
    """Get the encoder for a token type."""
    encoder = _ENCODERS.get(token_type)
    if encoder is None:
        raise MessageEncodingError(f"Unsupported token type: {token_type}")
    return encoder


def build_genesis_op_return(
    ticker: str | None,
    name: str | None,
    document_uri: str | None,
    document_hash: bytes | None,
    decimals: int,
    baton_vout: int | None,
    initial_quantity: int,
    token_type: int = TOKEN_TYPE_1,
) -> bytes:
    """
    Build a GENESIS OP_RETURN script.

    Args:
        ticker: Token ticker (None for empty)
        name: Token name (None for empty)
        document_uri: Document URI (None for empty)
        document_hash: SHA-256 of the document (None for empty)
        decimals: Decimal places, 0-9
        baton_vout: Output receiving the minting baton (None for fixed supply, else >= 2)
        initial_quantity: Number of base units issued to vout 1
        token_type: SLP token type

    Returns:
        OP_RETURN output script

    Raises:
        MessageEncodingError: If any field is out of range
    """
    try:
        message = GenesisMessage(
            ticker=ticker or "",
            name=name or "",
            document_uri=document_uri or "",
            document_hash=document_hash or b"",
            decimals=decimals,
            baton_vout=baton_vout,
            initial_quantity=initial_quantity,
        )
    except ValidationError as e:
        raise MessageEncodingError(f"Invalid GENESIS fields: {e}") from e
    return get_encoder(token_type).encode(message)


def build_mint_op_return(
    token_id: str,
    baton_vout: int | None,
    quantity: int,
    token_type: int = TOKEN_TYPE_1,
) -> bytes:
    """Build a MINT OP_RETURN script for an existing token."""
    try:
        message = MintMessage(token_id=token_id.lower(), baton_vout=baton_vout, quantity=quantity)
    except ValidationError as e:
        raise MessageEncodingError(f"Invalid MINT fields: {e}") from e
    return get_encoder(token_type).encode(message)


def build_send_op_return(
    token_id: str,
    output_amounts: Sequence[int],
    token_type: int = TOKEN_TYPE_1,
) -> bytes:
    """
    Build a SEND OP_RETURN script.

    Args:
        token_id: Token id (hex)
        output_amounts: Amounts for vout 1, 2, ... (the OP_RETURN output is implicit)
        token_type: SLP token type
    """
    try:
        message = SendMessage.build(token_id.lower(), output_amounts)
    except ValidationError as e:
        raise MessageEncodingError(f"Invalid SEND fields: {e}") from e
    return get_encoder(token_type).encode(message)
