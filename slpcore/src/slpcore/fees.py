"""
Fee estimation for SLP transactions.

The cost of an SLP transaction is what must be taken from the inputs besides
change: the miner fee for its estimated size (including the OP_RETURN output)
plus the satoshis locked in the dust-valued token and baton outputs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from slpcore.constants import OP_RETURN_VALUE_OVERHEAD, STANDARD_DUST_LIMIT

P2PKH = "P2PKH"

# Estimated serialized sizes in bytes
P2PKH_INPUT_SIZE = 148
P2PKH_OUTPUT_SIZE = 34
TX_OVERHEAD_SIZE = 10  # version, locktime, input/output counts


class SizeModel(ABC):
    """Estimates the serialized size of a transaction from its input and output types."""

    @abstractmethod
    def byte_count(self, inputs: dict[str, int], outputs: dict[str, int]) -> int:
        """Estimated size for {script_type: count} inputs and outputs"""


class P2PKHSizeModel(SizeModel):
    INPUT_SIZES = {P2PKH: P2PKH_INPUT_SIZE}
    OUTPUT_SIZES = {P2PKH: P2PKH_OUTPUT_SIZE}

    def byte_count(self, inputs: dict[str, int], outputs: dict[str, int]) -> int:
        total = TX_OVERHEAD_SIZE
        for script_type, count in inputs.items():
            if script_type not in self.INPUT_SIZES:
                raise ValueError(f"Unsupported input type: {script_type}")
            total += self.INPUT_SIZES[script_type] * count
        for script_type, count in outputs.items():
            if script_type not in self.OUTPUT_SIZES:
                raise ValueError(f"Unsupported output type: {script_type}")
            total += self.OUTPUT_SIZES[script_type] * count
        return total


def _calculate_cost(
    size_model: SizeModel,
    op_return_length: int,
    input_count: int,
    output_count: int,
    dust_outputs: Sequence[int],
    fee_rate: int,
    op_return_overhead: int,
) -> int:
    fee = size_model.byte_count({P2PKH: input_count}, {P2PKH: output_count})
    fee += op_return_length
    fee += op_return_overhead
    fee *= fee_rate
    return fee + sum(dust_outputs)


def calculate_mint_or_genesis_cost(
    size_model: SizeModel,
    op_return_length: int,
    input_count: int,
    has_baton: bool,
    has_change: bool,
    fee_rate: int = 1,
    receiver_satoshis: int = STANDARD_DUST_LIMIT,
    baton_satoshis: int = STANDARD_DUST_LIMIT,
    op_return_overhead: int = OP_RETURN_VALUE_OVERHEAD,
) -> int:
    """
    Total satoshis a GENESIS or MINT transaction consumes besides change.

    Args:
        size_model: Transaction size estimator
        op_return_length: Length of the OP_RETURN script in bytes
        input_count: Number of P2PKH inputs
        has_baton: Whether a baton output is created
        has_change: Whether a change output is created
        fee_rate: Fee rate in sat/byte
        receiver_satoshis: Value of the token receiver output
        baton_satoshis: Value of the baton output
        op_return_overhead: Bytes charged for the OP_RETURN output's value and length

    Returns:
        Fee plus the value of the receiver (and baton) outputs
    """
    output_count = 1
    dust_outputs = [receiver_satoshis]
    if has_baton:
        output_count += 1
        dust_outputs.append(baton_satoshis)
    if has_change:
        output_count += 1

    return _calculate_cost(
        size_model,
        op_return_length,
        input_count,
        output_count,
        dust_outputs,
        fee_rate,
        op_return_overhead,
    )


def calculate_genesis_cost(
    size_model: SizeModel,
    op_return_length: int,
    input_count: int,
    has_baton: bool,
    has_change: bool,
    fee_rate: int = 1,
    **kwargs: int,
) -> int:
    return calculate_mint_or_genesis_cost(
        size_model, op_return_length, input_count, has_baton, has_change, fee_rate, **kwargs
    )


def calculate_mint_cost(
    size_model: SizeModel,
    op_return_length: int,
    input_count: int,
    has_baton: bool,
    has_change: bool,
    fee_rate: int = 1,
    **kwargs: int,
) -> int:
    return calculate_mint_or_genesis_cost(
        size_model, op_return_length, input_count, has_baton, has_change, fee_rate, **kwargs
    )


def calculate_send_cost(
    size_model: SizeModel,
    op_return_length: int,
    input_count: int,
    receiver_count: int,
    has_change: bool,
    fee_rate: int = 1,
    receiver_satoshis: int = STANDARD_DUST_LIMIT,
    op_return_overhead: int = OP_RETURN_VALUE_OVERHEAD,
) -> int:
    """
    Total satoshis a SEND transaction consumes besides change.

    Each token receiver output is funded with receiver_satoshis.
    """
    output_count = receiver_count + (1 if has_change else 0)
    return _calculate_cost(
        size_model,
        op_return_length,
        input_count,
        output_count,
        [receiver_satoshis] * receiver_count,
        fee_rate,
        op_return_overhead,
    )
