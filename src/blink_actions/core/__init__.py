"""Core transaction construction."""

from blink_actions.core.client import SolanaClient
from blink_actions.core.errors import (
    ActionError,
    EmptyInstructionSet,
    InvalidAddress,
    InvalidAmount,
    InvalidRequest,
    QuoteUnavailable,
    SerializationFailed,
    UpstreamUnavailable,
)
from blink_actions.core.instructions import (
    CurrencyUnit,
    compose_transfer,
    decompose_message,
    instruction_from_json,
    parse_amount,
    parse_pubkey,
    require_instructions,
    sol_to_lamports,
    to_base_units,
)
from blink_actions.core.serializer import deserialize_transaction, serialize_transaction
from blink_actions.core.transaction import TransactionAssembler

__all__ = [
    # Network state
    "SolanaClient",
    # Errors
    "ActionError",
    "EmptyInstructionSet",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidRequest",
    "QuoteUnavailable",
    "SerializationFailed",
    "UpstreamUnavailable",
    # Composer
    "CurrencyUnit",
    "compose_transfer",
    "decompose_message",
    "instruction_from_json",
    "parse_amount",
    "parse_pubkey",
    "require_instructions",
    "sol_to_lamports",
    "to_base_units",
    # Assembler / serializer
    "TransactionAssembler",
    "serialize_transaction",
    "deserialize_transaction",
]
