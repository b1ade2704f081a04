"""
slpcore - Simple Ledger Protocol (SLP) token type 1 library

Provides message encoding and decoding, utxo classification and transaction
planning for SLP tokens on Bitcoin Cash.
"""

__version__ = "0.1.0"

from slpcore.classifier import (
    InternalConsistencyError,
    UtxoClassifier,
    compute_slp_balances,
    initial_judgement,
)
from slpcore.config import Settings, get_settings, setup_logging
from slpcore.constants import LOKAD_ID, STANDARD_DUST_LIMIT, TOKEN_TYPE_1
from slpcore.encoder import (
    MessageEncoder,
    MessageEncodingError,
    TokenType1Encoder,
    build_genesis_op_return,
    build_mint_op_return,
    build_send_op_return,
    get_encoder,
)
from slpcore.fees import (
    P2PKHSizeModel,
    SizeModel,
    calculate_genesis_cost,
    calculate_mint_cost,
    calculate_mint_or_genesis_cost,
    calculate_send_cost,
)
from slpcore.interfaces import AddressCodec, TransactionAssembler
from slpcore.message import (
    GenesisMessage,
    MessageErrorKind,
    MessageFormatError,
    MintMessage,
    SendMessage,
    SlpMessage,
    TransactionKind,
    UnsupportedTokenType,
    decode_message,
    parse_chunk_to_int,
    parse_quantity,
    try_decode_message,
)
from slpcore.models import SlpBalancesResult, SlpUtxo, UtxoJudgement
from slpcore.script import (
    ScriptFormatError,
    extract_op_return_chunks,
    get_script_operations,
    push_data,
)
from slpcore.tx_builder import (
    AddressFormatError,
    FeeTooLow,
    GenesisTxConfig,
    InvariantKind,
    MintTxConfig,
    ProtocolInvariantError,
    SendTxConfig,
    SlpTransactionBuilder,
    TransactionPlan,
    TransactionPlanError,
    check_send_input,
    verify_fee,
)
from slpcore.validator import (
    AncestryValidationError,
    AncestryValidator,
    CachingAncestryValidator,
    FunctionAncestryValidator,
    StaticAncestryValidator,
)

__all__ = [
    "AddressCodec",
    "AddressFormatError",
    "AncestryValidationError",
    "AncestryValidator",
    "CachingAncestryValidator",
    "FeeTooLow",
    "FunctionAncestryValidator",
    "GenesisMessage",
    "GenesisTxConfig",
    "InternalConsistencyError",
    "InvariantKind",
    "LOKAD_ID",
    "MessageEncoder",
    "MessageEncodingError",
    "MessageErrorKind",
    "MessageFormatError",
    "MintMessage",
    "MintTxConfig",
    "P2PKHSizeModel",
    "ProtocolInvariantError",
    "STANDARD_DUST_LIMIT",
    "ScriptFormatError",
    "SendMessage",
    "SendTxConfig",
    "Settings",
    "SizeModel",
    "SlpBalancesResult",
    "SlpMessage",
    "SlpTransactionBuilder",
    "SlpUtxo",
    "StaticAncestryValidator",
    "TOKEN_TYPE_1",
    "TokenType1Encoder",
    "TransactionAssembler",
    "TransactionKind",
    "TransactionPlan",
    "TransactionPlanError",
    "UnsupportedTokenType",
    "UtxoClassifier",
    "UtxoJudgement",
    "build_genesis_op_return",
    "build_mint_op_return",
    "build_send_op_return",
    "calculate_genesis_cost",
    "calculate_mint_cost",
    "calculate_mint_or_genesis_cost",
    "calculate_send_cost",
    "check_send_input",
    "compute_slp_balances",
    "decode_message",
    "extract_op_return_chunks",
    "get_encoder",
    "get_script_operations",
    "get_settings",
    "initial_judgement",
    "parse_chunk_to_int",
    "parse_quantity",
    "push_data",
    "setup_logging",
    "try_decode_message",
    "verify_fee",
]
