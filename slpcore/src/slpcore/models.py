"""
Utxo and balance data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from slpcore.message import GenesisMessage, MintMessage, SendMessage


class UtxoJudgement(str, Enum):
    UNKNOWN = "unknown"
    NOT_SLP = "not_slp"
    SLP_TOKEN = "slp_token"
    SLP_BATON = "slp_baton"
    INVALID_TOKEN_DAG = "invalid_token_dag"
    INVALID_BATON_DAG = "invalid_baton_dag"


@dataclass
class SlpUtxo:
    """
    An unspent output together with the outputs of the transaction that created it.

    source_scriptpubkeys holds the hex output scripts of the originating
    transaction indexed by vout; index 0 is where an SLP message would be.
    The judgement fields are filled in by the classifier.
    """

    txid: str
    vout: int
    satoshis: int
    source_scriptpubkeys: list[str] = field(default_factory=list)
    wif: str | None = None

    judgement: UtxoJudgement = UtxoJudgement.UNKNOWN
    judgement_amount: int | None = None
    message: GenesisMessage | MintMessage | SendMessage | None = None
    token_id: str | None = None

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass
class SlpBalancesResult:
    """Partition of a classified utxo batch with per-category totals."""

    satoshis_available_bch: int = 0
    satoshis_in_slp_token: int = 0
    satoshis_in_slp_baton: int = 0
    satoshis_in_invalid_token_dag: int = 0
    satoshis_in_invalid_baton_dag: int = 0

    # token_id -> total base units held
    token_balances: dict[str, int] = field(default_factory=dict)
    token_utxos: dict[str, list[SlpUtxo]] = field(default_factory=dict)
    baton_utxos: dict[str, list[SlpUtxo]] = field(default_factory=dict)
    non_slp_utxos: list[SlpUtxo] = field(default_factory=list)
    invalid_token_utxos: list[SlpUtxo] = field(default_factory=list)
    invalid_baton_utxos: list[SlpUtxo] = field(default_factory=list)

    def categorized_count(self) -> int:
        """Number of utxos placed in any category."""
        return (
            sum(len(utxos) for utxos in self.token_utxos.values())
            + sum(len(utxos) for utxos in self.baton_utxos.values())
            + len(self.non_slp_utxos)
            + len(self.invalid_token_utxos)
            + len(self.invalid_baton_utxos)
        )
