"""
Transaction plan builder for SLP GENESIS, MINT and SEND transactions.

Building happens in two steps:
- plan_*() validates the request (input judgements, token conservation,
  addresses, baton placement, fees) and resolves every default into an
  immutable TransactionPlan. Nothing is handed to an assembler yet.
- assemble() replays a plan into a fresh TransactionAssembler, signs every
  input and checks the final fee against the serialized size.

Output layout is fixed:
    vout 0: OP_RETURN message (0 sats)
    vout 1: token receiver (first receiver for SEND)
    vout 2..: remaining SEND receivers, or the baton receiver for GENESIS/MINT
    last:   change, only when it is above the dust limit
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from loguru import logger

from slpcore.config import Settings
from slpcore.constants import MIN_BATON_VOUT, SIGHASH_ALL
from slpcore.fees import (
    P2PKHSizeModel,
    SizeModel,
    calculate_genesis_cost,
    calculate_mint_cost,
    calculate_send_cost,
)
from slpcore.interfaces import AddressCodec, TransactionAssembler
from slpcore.message import (
    GenesisMessage,
    MintMessage,
    SendMessage,
    TransactionKind,
    decode_message,
)
from slpcore.models import SlpUtxo, UtxoJudgement

MessageT = TypeVar("MessageT", GenesisMessage, MintMessage, SendMessage)


class TransactionPlanError(Exception):
    """Base class for errors raised while planning an SLP transaction."""

    pass


class InvariantKind(str, Enum):
    CONSERVATION_VIOLATION = "conservation_violation"
    RECEIVER_COUNT_MISMATCH = "receiver_count_mismatch"
    FOREIGN_TOKEN_INPUT = "foreign_token_input"
    BATON_INPUT = "baton_input"
    INVALID_ANCESTRY_INPUT = "invalid_ancestry_input"
    UNJUDGED_INPUT = "unjudged_input"
    MISSING_BATON = "missing_baton"
    BATON_VOUT_MISMATCH = "baton_vout_mismatch"
    MESSAGE_KIND_MISMATCH = "message_kind_mismatch"
    DUPLICATE_INPUT = "duplicate_input"
    TOKEN_CHANGE_BELOW_DUST = "token_change_below_dust"


class ProtocolInvariantError(TransactionPlanError):
    """Raised when a transaction would break an SLP protocol rule."""

    def __init__(self, kind: InvariantKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class AddressFormatError(TransactionPlanError):
    """Raised when an address is not in SLP format."""

    pass


class FeeTooLow(TransactionPlanError):
    """Raised when the inputs cannot pay at least 1 sat/byte."""

    pass


class OutputRole(str, Enum):
    OP_RETURN = "op_return"
    TOKEN = "token"
    BATON = "baton"
    CHANGE = "change"


@dataclass
class GenesisTxConfig:
    """Request for a GENESIS transaction."""

    op_return: bytes
    mint_receiver_address: str
    input_utxos: list[SlpUtxo]
    baton_receiver_address: str | None = None
    change_address: str | None = None
    mint_receiver_satoshis: int | None = None
    baton_receiver_satoshis: int | None = None


@dataclass
class MintTxConfig:
    """Request for a MINT transaction. input_utxos must include the token's baton."""

    op_return: bytes
    mint_receiver_address: str
    input_utxos: list[SlpUtxo]
    baton_receiver_address: str | None = None
    change_address: str | None = None
    mint_receiver_satoshis: int | None = None
    baton_receiver_satoshis: int | None = None


@dataclass
class SendTxConfig:
    """
    Request for a SEND transaction.

    Receivers map to the message's output quantities in order. When a change
    address is given it takes the last quantity (token change).
    """

    op_return: bytes
    input_utxos: list[SlpUtxo]
    receiver_addresses: list[str]
    change_address: str | None = None
    receiver_satoshis: int | None = None


@dataclass(frozen=True)
class PlannedInput:
    txid: str
    vout: int
    satoshis: int
    wif: str


@dataclass(frozen=True)
class PlannedOutput:
    role: OutputRole
    destination: str | bytes  # native address, or the OP_RETURN script
    satoshis: int


@dataclass(frozen=True)
class TransactionPlan:
    """Fully resolved transaction, ready to be assembled."""

    kind: TransactionKind
    inputs: tuple[PlannedInput, ...]
    outputs: tuple[PlannedOutput, ...]
    token_id: str | None = None
    estimated_fee: int = 0  # miner fee implied by the size model
    change_after_fee: int = 0  # may be dropped as dust, see change_output

    @property
    def input_satoshis(self) -> int:
        return sum(inp.satoshis for inp in self.inputs)

    @property
    def output_satoshis(self) -> int:
        return sum(out.satoshis for out in self.outputs)

    @property
    def fee(self) -> int:
        return self.input_satoshis - self.output_satoshis

    @property
    def change_output(self) -> PlannedOutput | None:
        for out in self.outputs:
            if out.role == OutputRole.CHANGE:
                return out
        return None


def verify_fee(input_satoshis: int, output_satoshis: int, tx_hex: str) -> None:
    """
    Check that a serialized transaction pays more than 1 sat/byte.

    Raises:
        FeeTooLow: If input_satoshis - output_satoshis <= size in bytes
    """
    fee = input_satoshis - output_satoshis
    size = len(tx_hex) / 2
    if fee <= size:
        logger.error(f"Transaction fee too low: {fee} sats for {size:.0f} bytes")
        raise FeeTooLow(f"Transaction fee is not high enough: {fee} sats for {size:.0f} bytes")


def check_send_input(utxo: SlpUtxo, token_id: str) -> bool:
    """
    Check whether a utxo may be spent in a SEND of token_id.

    Returns:
        True if the utxo holds token_id, False if it holds no tokens

    Raises:
        ProtocolInvariantError: If the utxo is unjudged, a baton, or a
            different token
    """
    if utxo.judgement == UtxoJudgement.UNKNOWN:
        raise ProtocolInvariantError(
            InvariantKind.UNJUDGED_INPUT, f"Utxo {utxo.outpoint} does not have an SLP judgement"
        )
    if utxo.judgement == UtxoJudgement.SLP_BATON:
        raise ProtocolInvariantError(
            InvariantKind.BATON_INPUT,
            f"Utxo {utxo.outpoint} is a baton; batons can only be spent by MINT",
        )
    if utxo.judgement == UtxoJudgement.SLP_TOKEN:
        if utxo.judgement_amount is None:
            raise ProtocolInvariantError(
                InvariantKind.UNJUDGED_INPUT, f"Token utxo {utxo.outpoint} has no amount"
            )
        if utxo.token_id != token_id:
            raise ProtocolInvariantError(
                InvariantKind.FOREIGN_TOKEN_INPUT,
                f"Utxo {utxo.outpoint} holds token {utxo.token_id}, not {token_id}",
            )
        return True
    return False


class SlpTransactionBuilder:
    """
    Plans and assembles SLP transactions.

    Address handling, size estimation and assembly are injected; the builder
    itself performs no I/O.
    """

    def __init__(
        self,
        address_codec: AddressCodec,
        assembler_factory: Callable[[], TransactionAssembler],
        size_model: SizeModel | None = None,
        settings: Settings | None = None,
    ):
        self.address_codec = address_codec
        self.assembler_factory = assembler_factory
        self.size_model = size_model or P2PKHSizeModel()
        self.settings = settings or Settings()

    @property
    def dust_limit(self) -> int:
        return self.settings.dust_limit

    def plan_genesis(self, config: GenesisTxConfig) -> TransactionPlan:
        """
        Validate a GENESIS request and resolve it into a plan.

        Raises:
            MessageFormatError: If op_return is not a valid SLP message
            ProtocolInvariantError: On any SLP rule violation
            AddressFormatError: If an address is not in SLP format
            FeeTooLow: If the inputs cannot cover outputs and fee
        """
        message = self._decode(config.op_return, GenesisMessage)

        self._check_inputs(config.input_utxos, TransactionKind.GENESIS, None)
        inputs = self._resolve_inputs(config.input_utxos)
        self._check_baton_vout(message.baton_vout, config.baton_receiver_address)

        return self._plan_issuance(
            kind=TransactionKind.GENESIS,
            op_return=config.op_return,
            token_id=None,
            inputs=inputs,
            mint_receiver_address=config.mint_receiver_address,
            mint_receiver_satoshis=config.mint_receiver_satoshis,
            baton_receiver_address=config.baton_receiver_address,
            baton_receiver_satoshis=config.baton_receiver_satoshis,
            change_address=config.change_address,
            cost_fn=calculate_genesis_cost,
        )

    def plan_mint(self, config: MintTxConfig) -> TransactionPlan:
        """
        Validate a MINT request and resolve it into a plan.

        The inputs must contain a baton of the minted token.
        """
        message = self._decode(config.op_return, MintMessage)

        self._check_inputs(config.input_utxos, TransactionKind.MINT, message.token_id)
        if not any(
            utxo.judgement == UtxoJudgement.SLP_BATON and utxo.token_id == message.token_id
            for utxo in config.input_utxos
        ):
            raise ProtocolInvariantError(
                InvariantKind.MISSING_BATON,
                f"No minting baton for token {message.token_id} among the inputs",
            )
        inputs = self._resolve_inputs(config.input_utxos)
        self._check_baton_vout(message.baton_vout, config.baton_receiver_address)

        return self._plan_issuance(
            kind=TransactionKind.MINT,
            op_return=config.op_return,
            token_id=message.token_id,
            inputs=inputs,
            mint_receiver_address=config.mint_receiver_address,
            mint_receiver_satoshis=config.mint_receiver_satoshis,
            baton_receiver_address=config.baton_receiver_address,
            baton_receiver_satoshis=config.baton_receiver_satoshis,
            change_address=config.change_address,
            cost_fn=calculate_mint_cost,
        )

    def plan_send(self, config: SendTxConfig) -> TransactionPlan:
        """
        Validate a SEND request and resolve it into a plan.

        Token inputs must add up exactly to the quantities declared in the
        message; anything else would burn or inflate tokens.
        """
        message = self._decode(config.op_return, SendMessage)

        token_input_total = self._check_inputs(
            config.input_utxos, TransactionKind.SEND, message.token_id
        )

        declared_outputs = len(message.token_outputs)
        receiver_count = len(config.receiver_addresses) + (1 if config.change_address else 0)
        if receiver_count != declared_outputs:
            raise ProtocolInvariantError(
                InvariantKind.RECEIVER_COUNT_MISMATCH,
                f"{receiver_count} token receivers configured but the message declares "
                f"{declared_outputs} outputs",
            )
        if not config.receiver_addresses:
            raise ProtocolInvariantError(
                InvariantKind.RECEIVER_COUNT_MISMATCH, "SEND needs at least one receiver address"
            )

        if token_input_total != message.total_output_quantity:
            raise ProtocolInvariantError(
                InvariantKind.CONSERVATION_VIOLATION,
                f"Token input quantity {token_input_total} does not match token outputs "
                f"{message.total_output_quantity}",
            )

        inputs = self._resolve_inputs(config.input_utxos)
        receivers = [self._to_cash_address(addr) for addr in config.receiver_addresses]
        change_address = (
            self._to_cash_address(config.change_address) if config.change_address else None
        )
        receiver_satoshis = self._resolve_satoshis(config.receiver_satoshis)

        cost = calculate_send_cost(
            self.size_model,
            len(config.op_return),
            len(inputs),
            len(receivers),
            change_address is not None,
            self.settings.fee_rate,
            receiver_satoshis=receiver_satoshis,
            op_return_overhead=self.settings.op_return_overhead,
        )
        change = self._change_after_cost(inputs, cost)

        outputs = [PlannedOutput(OutputRole.OP_RETURN, config.op_return, 0)]
        outputs.extend(
            PlannedOutput(OutputRole.TOKEN, addr, receiver_satoshis) for addr in receivers
        )
        if change_address is not None:
            token_change = message.token_outputs[-1]
            if change > self.dust_limit:
                outputs.append(PlannedOutput(OutputRole.CHANGE, change_address, change))
            elif token_change > 0:
                raise ProtocolInvariantError(
                    InvariantKind.TOKEN_CHANGE_BELOW_DUST,
                    f"Change of {change} sats cannot carry {token_change} change tokens",
                )

        return self._finish(
            TransactionKind.SEND, message.token_id, inputs, outputs, cost, change
        )

    def assemble(self, plan: TransactionPlan) -> str:
        """
        Assemble, sign and serialize a plan.

        A new assembler is used for every call and dropped on failure.

        Returns:
            Signed transaction hex

        Raises:
            FeeTooLow: If the final transaction pays 1 sat/byte or less
        """
        assembler = self.assembler_factory()

        for inp in plan.inputs:
            assembler.add_input(inp.txid, inp.vout)
        for out in plan.outputs:
            assembler.add_output(out.destination, out.satoshis)
        for i, inp in enumerate(plan.inputs):
            assembler.sign(i, inp.wif, SIGHASH_ALL, inp.satoshis)

        tx_hex = assembler.build()
        verify_fee(plan.input_satoshis, plan.output_satoshis, tx_hex)

        logger.info(
            f"Assembled {plan.kind.value} transaction: {len(tx_hex) // 2} bytes, "
            f"fee {plan.fee} sats"
        )
        return tx_hex

    def build_raw_genesis_tx(self, config: GenesisTxConfig) -> str:
        return self.assemble(self.plan_genesis(config))

    def build_raw_mint_tx(self, config: MintTxConfig) -> str:
        return self.assemble(self.plan_mint(config))

    def build_raw_send_tx(self, config: SendTxConfig) -> str:
        return self.assemble(self.plan_send(config))

    def _plan_issuance(
        self,
        kind: TransactionKind,
        op_return: bytes,
        token_id: str | None,
        inputs: list[PlannedInput],
        mint_receiver_address: str,
        mint_receiver_satoshis: int | None,
        baton_receiver_address: str | None,
        baton_receiver_satoshis: int | None,
        change_address: str | None,
        cost_fn: Callable[..., int],
    ) -> TransactionPlan:
        """Shared GENESIS/MINT planning once the message and inputs are validated."""
        mint_receiver = self._to_cash_address(mint_receiver_address)
        baton_receiver = (
            self._to_cash_address(baton_receiver_address) if baton_receiver_address else None
        )
        change = self._to_cash_address(change_address) if change_address else None

        mint_satoshis = self._resolve_satoshis(mint_receiver_satoshis)
        baton_satoshis = self._resolve_satoshis(baton_receiver_satoshis)

        cost = cost_fn(
            self.size_model,
            len(op_return),
            len(inputs),
            baton_receiver is not None,
            change is not None,
            self.settings.fee_rate,
            receiver_satoshis=mint_satoshis,
            baton_satoshis=baton_satoshis,
            op_return_overhead=self.settings.op_return_overhead,
        )
        change_satoshis = self._change_after_cost(inputs, cost)

        outputs = [
            PlannedOutput(OutputRole.OP_RETURN, op_return, 0),
            PlannedOutput(OutputRole.TOKEN, mint_receiver, mint_satoshis),
        ]
        if baton_receiver is not None:
            outputs.append(PlannedOutput(OutputRole.BATON, baton_receiver, baton_satoshis))
        if change is not None and change_satoshis > self.dust_limit:
            outputs.append(PlannedOutput(OutputRole.CHANGE, change, change_satoshis))

        return self._finish(kind, token_id, inputs, outputs, cost, change_satoshis)

    def _finish(
        self,
        kind: TransactionKind,
        token_id: str | None,
        inputs: list[PlannedInput],
        outputs: list[PlannedOutput],
        cost: int,
        change: int,
    ) -> TransactionPlan:
        dust_total = sum(
            out.satoshis for out in outputs if out.role in (OutputRole.TOKEN, OutputRole.BATON)
        )
        plan = TransactionPlan(
            kind=kind,
            inputs=tuple(inputs),
            outputs=tuple(outputs),
            token_id=token_id,
            estimated_fee=cost - dust_total,
            change_after_fee=change,
        )
        logger.info(
            f"Planned {kind.value}: {len(plan.inputs)} inputs, {len(plan.outputs)} outputs, "
            f"estimated fee {plan.estimated_fee} sats"
        )
        return plan

    def _decode(self, op_return: bytes, expected: type[MessageT]) -> MessageT:
        message = decode_message(op_return)
        if not isinstance(message, expected):
            raise ProtocolInvariantError(
                InvariantKind.MESSAGE_KIND_MISMATCH,
                f"Expected a {expected.__name__}, got a {message.kind.value} message",
            )
        return message

    def _check_inputs(
        self, utxos: Sequence[SlpUtxo], kind: TransactionKind, token_id: str | None
    ) -> int:
        """
        Check that every input may be spent by this transaction.

        Tokens of token_id may only be spent by SEND and batons of token_id only
        by MINT. Everything else except plain coins is rejected, as is an
        outpoint listed twice.

        Returns:
            Total token quantity carried by the inputs
        """
        if not utxos:
            raise TransactionPlanError("No input utxos")

        seen: set[tuple[str, int]] = set()
        for utxo in utxos:
            if (utxo.txid, utxo.vout) in seen:
                raise ProtocolInvariantError(
                    InvariantKind.DUPLICATE_INPUT, f"Input {utxo.outpoint} is listed more than once"
                )
            seen.add((utxo.txid, utxo.vout))

        token_total = 0
        for utxo in utxos:
            judgement = utxo.judgement
            if judgement == UtxoJudgement.NOT_SLP:
                continue
            if judgement == UtxoJudgement.SLP_TOKEN:
                if kind == TransactionKind.SEND and utxo.token_id == token_id:
                    if utxo.judgement_amount is None:
                        raise ProtocolInvariantError(
                            InvariantKind.UNJUDGED_INPUT,
                            f"Token utxo {utxo.outpoint} has no amount",
                        )
                    token_total += utxo.judgement_amount
                    continue
                raise ProtocolInvariantError(
                    InvariantKind.FOREIGN_TOKEN_INPUT,
                    f"Input {utxo.outpoint} holds tokens of {utxo.token_id}",
                )
            if judgement == UtxoJudgement.SLP_BATON:
                if kind == TransactionKind.MINT and utxo.token_id == token_id:
                    continue
                raise ProtocolInvariantError(
                    InvariantKind.BATON_INPUT, f"Cannot spend minting baton {utxo.outpoint}"
                )
            if judgement in (UtxoJudgement.INVALID_TOKEN_DAG, UtxoJudgement.INVALID_BATON_DAG):
                raise ProtocolInvariantError(
                    InvariantKind.INVALID_ANCESTRY_INPUT,
                    f"Cannot spend {utxo.outpoint} with invalid token ancestry",
                )
            raise ProtocolInvariantError(
                InvariantKind.UNJUDGED_INPUT, f"Cannot spend {utxo.outpoint} with no SLP judgement"
            )
        return token_total

    def _check_baton_vout(self, baton_vout: int | None, baton_receiver: str | None) -> None:
        if baton_receiver is not None and baton_vout != MIN_BATON_VOUT:
            raise ProtocolInvariantError(
                InvariantKind.BATON_VOUT_MISMATCH,
                f"Baton receiver is output {MIN_BATON_VOUT} but the message declares {baton_vout}",
            )
        if baton_receiver is None and baton_vout is not None:
            raise ProtocolInvariantError(
                InvariantKind.BATON_VOUT_MISMATCH,
                f"Message declares baton output {baton_vout} but no baton receiver is set",
            )

    def _resolve_inputs(self, utxos: Sequence[SlpUtxo]) -> list[PlannedInput]:
        inputs = []
        for utxo in utxos:
            if not utxo.wif:
                raise TransactionPlanError(f"No signing key for input {utxo.outpoint}")
            inputs.append(PlannedInput(utxo.txid, utxo.vout, utxo.satoshis, utxo.wif))
        return inputs

    def _resolve_satoshis(self, satoshis: int | None) -> int:
        if satoshis is None:
            return self.dust_limit
        if satoshis < self.dust_limit:
            raise TransactionPlanError(
                f"Output value {satoshis} is below the dust limit {self.dust_limit}"
            )
        return satoshis

    def _change_after_cost(self, inputs: Sequence[PlannedInput], cost: int) -> int:
        input_satoshis = sum(inp.satoshis for inp in inputs)
        change = input_satoshis - cost
        if change < 0:
            logger.error(f"Inputs of {input_satoshis} sats cannot cover cost of {cost} sats")
            raise FeeTooLow(
                f"Insufficient input value: {input_satoshis} sats available, {cost} needed"
            )
        return change

    def _to_cash_address(self, address: str) -> str:
        if not self.address_codec.is_slp_address(address):
            raise AddressFormatError(f"Not an SLP address: {address}")
        return self.address_codec.to_cash_address(address)
