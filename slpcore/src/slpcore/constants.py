"""
Bitcoin Cash script and SLP token type 1 protocol constants.
"""

from __future__ import annotations

# Script opcodes understood by the push-data parser
OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_RESERVED = 0x50
OP_1 = 0x51
OP_16 = 0x60
OP_RETURN = 0x6A

# Protocol identifier pushed as the first chunk of every SLP message
LOKAD_ID = b"SLP\x00"

# Only token type 1 is recognized
TOKEN_TYPE_1 = 1

# Standard P2PKH dust limit in Bitcoin Cash nodes
STANDARD_DUST_LIMIT = 546  # satoshis

# Field limits
MAX_TOKEN_QUANTITY = 2**64 - 1
MAX_SEND_OUTPUTS = 19
TOKEN_ID_LENGTH = 32
DOCUMENT_HASH_LENGTH = 32
MAX_DECIMALS = 9
MIN_BATON_VOUT = 2
MAX_BATON_VOUT = 0xFF

# Relay policy limit for a whole OP_RETURN script
MAX_OP_RETURN_SIZE = 223  # bytes

# Fee bytes charged for the OP_RETURN output (8-byte zero value + script length)
OP_RETURN_VALUE_OVERHEAD = 10

SIGHASH_ALL = 0x01
