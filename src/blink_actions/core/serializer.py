"""
Transaction serialization: wire bytes <-> base64 text.
"""

import base64
import binascii

from solders.signature import Signature
from solders.transaction import VersionedTransaction

from blink_actions.core.errors import SerializationFailed


def serialize_transaction(tx: VersionedTransaction) -> str:
    """Encode an unsigned transaction as base64 wire bytes.

    Deterministic: the same message always yields the same text.

    Raises:
        SerializationFailed: If the transaction has no fee payer, a signature
            count that disagrees with its header, a non-default signature,
            or fails to encode
    """
    message = tx.message
    num_signers = message.header.num_required_signatures
    if num_signers < 1 or not list(message.account_keys):
        raise SerializationFailed("Transaction has no fee payer")
    if len(tx.signatures) != num_signers:
        raise SerializationFailed(
            f"Transaction carries {len(tx.signatures)} signature(s), header requires {num_signers}"
        )
    if not is_unsigned(tx):
        raise SerializationFailed("Transaction is already signed")

    try:
        raw = bytes(tx)
    except Exception as e:
        raise SerializationFailed(f"Failed to serialize transaction: {e}") from e
    return base64.b64encode(raw).decode("ascii")


def deserialize_transaction(data: str | bytes) -> VersionedTransaction:
    """Decode base64 text (or raw wire bytes) into a VersionedTransaction.

    Raises:
        SerializationFailed: On malformed input
    """
    if isinstance(data, str):
        try:
            data = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SerializationFailed(f"Transaction is not valid base64: {e}") from e
    try:
        return VersionedTransaction.from_bytes(bytes(data))
    except Exception as e:
        raise SerializationFailed(f"Failed to deserialize transaction: {e}") from e


def is_unsigned(tx: VersionedTransaction) -> bool:
    """True when every signature slot still holds the default signature."""
    default = Signature.default()
    return all(sig == default for sig in tx.signatures)
