"""
Collaborators used by the transaction plan builder.

Address handling and transaction assembly (signing, serialization) are
provided by the host wallet; slpcore only decides what goes into the
transaction.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AddressCodec(ABC):
    """Validates and converts addresses between token and native formats."""

    @abstractmethod
    def is_slp_address(self, address: str) -> bool:
        """Whether the address is in token (SLP) format"""

    @abstractmethod
    def to_cash_address(self, address: str) -> str:
        """Convert an SLP-format address to the native cash address format"""


class TransactionAssembler(ABC):
    """Accumulates inputs and outputs, signs and serializes a transaction."""

    @abstractmethod
    def add_input(self, txid: str, vout: int) -> None:
        """Append an input spending txid:vout"""

    @abstractmethod
    def add_output(self, destination: str | bytes, satoshis: int) -> None:
        """Append an output paying a native address, or carrying a raw script"""

    @abstractmethod
    def sign(self, input_index: int, wif: str, sighash: int, satoshis: int) -> None:
        """Sign one input with the given key and sighash type"""

    @abstractmethod
    def build(self) -> str:
        """Serialize the signed transaction to hex"""
