"""
Tests for slpcore.encoder
"""

from __future__ import annotations

import pytest

from slpcore.encoder import (
    MessageEncodingError,
    TokenType1Encoder,
    build_genesis_op_return,
    build_mint_op_return,
    build_send_op_return,
    get_encoder,
)
from slpcore.message import GenesisMessage, decode_message

GENESIS_MINIMAL = (
    "6a04534c500001010747454e455349534c004c004c004c0001004c00080000000000000064"
)
MINT_NO_BATON = "6a04534c50000101044d494e5420" + "ff" * 32 + "4c00080000000000000064"
SEND_TWO_OUTPUTS = (
    "6a04534c500001010453454e4420" + "88" * 32 + "080000000000000042" + "080000000000000063"
)


class TestBuildOpReturn:
    """Tests for the OP_RETURN builders against known scripts."""

    def test_genesis_minimal(self) -> None:
        script = build_genesis_op_return(None, None, None, None, 0, None, 100)
        assert script.hex() == GENESIS_MINIMAL

    def test_genesis_with_baton(self) -> None:
        script = build_genesis_op_return("", "", "", b"", 0, 2, 100)
        assert script.hex() == GENESIS_MINIMAL.replace("01004c0008", "0100010208")

    def test_mint(self) -> None:
        assert build_mint_op_return("ff" * 32, None, 100).hex() == MINT_NO_BATON

    def test_mint_uppercase_token_id(self) -> None:
        assert build_mint_op_return("FF" * 32, None, 100).hex() == MINT_NO_BATON

    def test_send(self) -> None:
        assert build_send_op_return("88" * 32, [0x42, 0x63]).hex() == SEND_TWO_OUTPUTS

    def test_genesis_fields_decode(self) -> None:
        script = build_genesis_op_return(
            "TST", "Test Token", "https://slp.de", b"\xaa" * 32, 8, 2, 2**40
        )
        msg = decode_message(script)
        assert msg == GenesisMessage(
            ticker="TST",
            name="Test Token",
            document_uri="https://slp.de",
            document_hash=b"\xaa" * 32,
            decimals=8,
            baton_vout=2,
            initial_quantity=2**40,
        )


class TestFieldValidation:
    """Tests for rejected fields."""

    def test_decimals(self) -> None:
        with pytest.raises(MessageEncodingError):
            build_genesis_op_return("", "", "", None, 10, None, 1)

    def test_baton_vout(self) -> None:
        with pytest.raises(MessageEncodingError):
            build_genesis_op_return("", "", "", None, 0, 1, 1)
        with pytest.raises(MessageEncodingError):
            build_mint_op_return("ff" * 32, 256, 1)

    def test_document_hash(self) -> None:
        with pytest.raises(MessageEncodingError):
            build_genesis_op_return("", "", "", b"\x00" * 31, 0, None, 1)

    def test_quantity(self) -> None:
        with pytest.raises(MessageEncodingError):
            build_mint_op_return("ff" * 32, None, 2**64)

    def test_token_id(self) -> None:
        with pytest.raises(MessageEncodingError):
            build_send_op_return("ff" * 31, [1])

    def test_send_output_count(self) -> None:
        assert len(decode_message(build_send_op_return("88" * 32, [1] * 19)).token_outputs) == 19
        with pytest.raises(MessageEncodingError):
            build_send_op_return("88" * 32, [1] * 20)
        with pytest.raises(MessageEncodingError):
            build_send_op_return("88" * 32, [])

    def test_script_too_large(self) -> None:
        with pytest.raises(MessageEncodingError, match="too large"):
            build_genesis_op_return("", "x" * 200, "", None, 0, None, 1)


class TestGetEncoder:
    def test_type_1(self) -> None:
        encoder = get_encoder()
        assert isinstance(encoder, TokenType1Encoder)
        assert encoder.token_type == 1

    def test_unsupported(self) -> None:
        with pytest.raises(MessageEncodingError):
            get_encoder(2)
