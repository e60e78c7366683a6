"""
Instruction composition.

Builds the native transfer used by donations, validates externally quoted
instruction sets, and rebuilds plain Instructions out of an upstream
message so they can be re-assembled around a fresh blockhash.
"""

import base64
import binascii
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Sequence

import base58
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.instruction import AccountMeta, Instruction
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from blink_actions.config import SOL_DECIMALS
from blink_actions.core.errors import (
    InvalidAddress,
    InvalidAmount,
    QuoteUnavailable,
    SerializationFailed,
)

PUBKEY_LENGTH = 32

# Amounts are u64 on chain (lamports, token atoms)
MAX_BASE_UNITS = 2**64 - 1


class CurrencyUnit(Enum):
    SOL = "sol"
    LAMPORTS = "lamports"


def parse_pubkey(value: Any, field: str = "address") -> Pubkey:
    """Parse a base58 public key.

    Args:
        value: Candidate address (str or Pubkey)
        field: Name used in the error message

    Raises:
        InvalidAddress: If value is not base58 or does not decode to 32 bytes
    """
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidAddress(f"Invalid {field}: missing public key")
    value = value.strip()
    try:
        raw = base58.b58decode(value)
    except ValueError as e:
        raise InvalidAddress(f"Invalid {field}: {value!r} is not base58") from e
    if len(raw) != PUBKEY_LENGTH:
        raise InvalidAddress(
            f"Invalid {field}: {value!r} decodes to {len(raw)} bytes, expected {PUBKEY_LENGTH}"
        )
    return Pubkey.from_bytes(raw)


def parse_decimal(amount: Any) -> Decimal:
    """Parse a finite, strictly positive decimal amount.

    Raises:
        InvalidAmount: If amount is non-numeric, NaN/inf or not positive
    """
    if isinstance(amount, bool):
        raise InvalidAmount(f"Invalid amount: {amount!r}")
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmount(f"Invalid amount: {amount!r} is not a number") from e
    if not value.is_finite():
        raise InvalidAmount(f"Invalid amount: {amount!r} is not finite")
    if value <= 0:
        raise InvalidAmount(f"Invalid amount: {amount!r} must be greater than zero")
    return value


def to_base_units(amount: Any, decimals: int) -> int:
    """Convert a UI amount to integer base units (lamports, token atoms).

    Raises:
        InvalidAmount: If the amount is invalid or has more precision than
            the token supports, or does not fit in a u64
    """
    value = parse_decimal(amount)
    # 2**64 has 20 digits; anything larger cannot fit whatever the decimals
    if value.adjusted() + decimals > 20:
        raise InvalidAmount(f"Invalid amount: {amount!r} is too large")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmount(
            f"Invalid amount: {amount!r} has more than {decimals} decimal places"
        )
    base_units = int(scaled)
    if base_units > MAX_BASE_UNITS:
        raise InvalidAmount(f"Invalid amount: {amount!r} is too large")
    return base_units


def sol_to_lamports(amount: Any) -> int:
    return to_base_units(amount, SOL_DECIMALS)


def parse_amount(amount: Any, unit: CurrencyUnit = CurrencyUnit.SOL) -> int:
    """Amount in lamports, whatever unit the caller used."""
    if unit is CurrencyUnit.LAMPORTS:
        return to_base_units(amount, 0)
    return sol_to_lamports(amount)


def compose_transfer(sender: Pubkey, recipient: Pubkey, lamports: int) -> list[Instruction]:
    """Build a native SOL transfer.

    Args:
        sender: Funding account, signs the transfer
        recipient: Receiving account
        lamports: Amount in lamports, integer >= 1

    Returns:
        Exactly one System Program transfer instruction

    Raises:
        InvalidAmount: If lamports is not an integer in 1..2**64-1
    """
    if isinstance(lamports, bool) or not isinstance(lamports, int) or not 1 <= lamports <= MAX_BASE_UNITS:
        raise InvalidAmount(f"Invalid amount: {lamports!r} lamports")
    return [
        transfer(
            TransferParams(from_pubkey=sender, to_pubkey=recipient, lamports=lamports)
        )
    ]


def require_instructions(instructions: Iterable[Instruction], source: str) -> list[Instruction]:
    """Accept a quoted instruction set as-is, provided it is non-empty.

    Raises:
        QuoteUnavailable: If the set is empty
    """
    instructions = list(instructions)
    if not instructions:
        raise QuoteUnavailable(f"{source} returned an empty instruction set")
    return instructions


def instruction_from_json(data: dict) -> Instruction:
    """Build an Instruction from the aggregator JSON shape.

    ``{"programId": str, "accounts": [{"pubkey", "isSigner", "isWritable"}],
    "data": base64}``

    Raises:
        QuoteUnavailable: If the payload does not have that shape
    """
    try:
        program_id = Pubkey.from_string(data["programId"])
        accounts = [
            AccountMeta(
                pubkey=Pubkey.from_string(account["pubkey"]),
                is_signer=bool(account["isSigner"]),
                is_writable=bool(account["isWritable"]),
            )
            for account in data.get("accounts", [])
        ]
        payload = base64.b64decode(data.get("data", ""), validate=True)
    except (KeyError, TypeError, ValueError, binascii.Error) as e:
        raise QuoteUnavailable(f"Malformed instruction in quote: {e}") from e
    return Instruction(program_id, payload, accounts)


def _loaded_addresses(
    message: MessageV0, lookup_tables: Sequence[AddressLookupTableAccount]
) -> tuple[list[Pubkey], list[Pubkey]]:
    tables = {table.key: table.addresses for table in lookup_tables}
    writable: list[Pubkey] = []
    readonly: list[Pubkey] = []
    for lookup in message.address_table_lookups:
        addresses = tables.get(lookup.account_key)
        if addresses is None:
            raise SerializationFailed(
                f"Message references unresolved lookup table {lookup.account_key}"
            )
        try:
            writable.extend(addresses[i] for i in lookup.writable_indexes)
            readonly.extend(addresses[i] for i in lookup.readonly_indexes)
        except IndexError as e:
            raise SerializationFailed(
                f"Lookup table {lookup.account_key} index out of range"
            ) from e
    return writable, readonly


def decompose_message(
    message: Message | MessageV0,
    lookup_tables: Sequence[AddressLookupTableAccount] = (),
) -> list[Instruction]:
    """Rebuild ordered Instructions from a compiled legacy or v0 message.

    Account keys are laid out as static keys, then every lookup table's
    writable addresses, then every lookup table's read-only addresses.
    Signer and writable flags come from the message header.

    Args:
        message: Compiled message, e.g. ``VersionedTransaction.message``
        lookup_tables: Resolved tables for every lookup the message uses

    Returns:
        Instructions in the same order as the message

    Raises:
        SerializationFailed: If an index cannot be resolved
    """
    static_keys = list(message.account_keys)
    header = message.header
    num_signers = header.num_required_signatures
    num_writable_signed = num_signers - header.num_readonly_signed_accounts
    num_writable_unsigned_end = len(static_keys) - header.num_readonly_unsigned_accounts

    lookups = getattr(message, "address_table_lookups", None) or []
    if lookups:
        loaded_writable, loaded_readonly = _loaded_addresses(message, lookup_tables)
    else:
        loaded_writable, loaded_readonly = [], []

    keys = static_keys + loaded_writable + loaded_readonly
    num_static = len(static_keys)
    num_writable_end = num_static + len(loaded_writable)

    def account_meta(index: int) -> AccountMeta:
        if index < num_static:
            is_signer = index < num_signers
            if is_signer:
                is_writable = index < num_writable_signed
            else:
                is_writable = index < num_writable_unsigned_end
        else:
            is_signer = False
            is_writable = index < num_writable_end
        return AccountMeta(pubkey=keys[index], is_signer=is_signer, is_writable=is_writable)

    instructions = []
    for compiled in message.instructions:
        try:
            program_id = keys[compiled.program_id_index]
            accounts = [account_meta(i) for i in compiled.accounts]
        except IndexError as e:
            raise SerializationFailed("Compiled instruction references a missing account") from e
        instructions.append(Instruction(program_id, bytes(compiled.data), accounts))
    return instructions
