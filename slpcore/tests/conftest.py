"""
Test configuration for slpcore tests.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from slpcore.config import Settings
from slpcore.interfaces import AddressCodec, TransactionAssembler
from slpcore.models import SlpUtxo, UtxoJudgement
from slpcore.tx_builder import SlpTransactionBuilder

TOKEN_ID = "88" * 32
OTHER_TOKEN_ID = "ff" * 32
TEST_WIF = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"

SLP_PREFIX = "simpleledger:"
CASH_PREFIX = "bitcoincash:"


class FakeAddressCodec(AddressCodec):
    """Treats any 'simpleledger:' address as SLP formatted."""

    def is_slp_address(self, address: str) -> bool:
        return address.startswith(SLP_PREFIX)

    def to_cash_address(self, address: str) -> str:
        return CASH_PREFIX + address.removeprefix(SLP_PREFIX)


class RecordingAssembler(TransactionAssembler):
    """Records every call and builds a dummy transaction of a fixed size."""

    def __init__(self, tx_size: int = 250):
        self.tx_size = tx_size
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def add_input(self, txid: str, vout: int) -> None:
        self.calls.append(("add_input", (txid, vout)))

    def add_output(self, destination: str | bytes, satoshis: int) -> None:
        self.calls.append(("add_output", (destination, satoshis)))

    def sign(self, input_index: int, wif: str, sighash: int, satoshis: int) -> None:
        self.calls.append(("sign", (input_index, wif, sighash, satoshis)))

    def build(self) -> str:
        self.calls.append(("build", ()))
        return "00" * self.tx_size


def slp_address(name: str) -> str:
    return f"{SLP_PREFIX}{name}"


def cash_address(name: str) -> str:
    return f"{CASH_PREFIX}{name}"


@pytest.fixture
def address_codec() -> FakeAddressCodec:
    return FakeAddressCodec()


@pytest.fixture
def assemblers() -> list[RecordingAssembler]:
    """Every assembler handed out by the builder's factory, in order."""
    return []


@pytest.fixture
def builder(
    address_codec: FakeAddressCodec, assemblers: list[RecordingAssembler]
) -> SlpTransactionBuilder:
    def factory() -> RecordingAssembler:
        assembler = RecordingAssembler()
        assemblers.append(assembler)
        return assembler

    return SlpTransactionBuilder(address_codec, factory, settings=Settings())


@pytest.fixture
def make_utxo() -> Callable[..., SlpUtxo]:
    """Factory for utxos with a preset judgement."""

    def _make(
        txid: str = "aa" * 32,
        vout: int = 1,
        satoshis: int = 10_000,
        judgement: UtxoJudgement = UtxoJudgement.NOT_SLP,
        amount: int | None = None,
        token_id: str | None = None,
        wif: str | None = TEST_WIF,
        scripts: list[str] | None = None,
    ) -> SlpUtxo:
        return SlpUtxo(
            txid=txid,
            vout=vout,
            satoshis=satoshis,
            source_scriptpubkeys=scripts or [],
            wif=wif,
            judgement=judgement,
            judgement_amount=amount,
            token_id=token_id,
        )

    return _make
