"""
Transaction assembly.

Wraps an ordered instruction list and a fee payer into a v0 message around a
freshly fetched blockhash, and returns it as an unsigned VersionedTransaction
(every signature slot holds the default signature for the wallet to fill).
"""

from typing import Protocol, Sequence

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from blink_actions.core.errors import EmptyInstructionSet, SerializationFailed
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)


class BlockhashProvider(Protocol):
    """Anything that can fetch the latest blockhash (SolanaClient in production)"""

    async def get_latest_blockhash(self) -> Hash:
        ...


def unsigned_transaction(message: MessageV0) -> VersionedTransaction:
    """Attach one default signature per required signer."""
    signatures = [Signature.default()] * message.header.num_required_signatures
    return VersionedTransaction.populate(message, signatures)


class TransactionAssembler:
    """Builds unsigned versioned transactions. Holds no per-request state."""

    def __init__(self, blockhash_provider: BlockhashProvider):
        self.blockhash_provider = blockhash_provider

    async def assemble(
        self,
        instructions: Sequence[Instruction],
        fee_payer: Pubkey,
        lookup_tables: Sequence[AddressLookupTableAccount] = (),
    ) -> VersionedTransaction:
        """Compile instructions into an unsigned v0 transaction.

        Args:
            instructions: Ordered instructions, kept in this order
            fee_payer: Account paying fees, first signer slot
            lookup_tables: Resolved address lookup tables the compiler may use

        Returns:
            Unsigned VersionedTransaction

        Raises:
            EmptyInstructionSet: If no instructions are given
            UpstreamUnavailable: If the blockhash fetch fails
            SerializationFailed: If the message cannot be compiled
        """
        instructions = list(instructions)
        if not instructions:
            raise EmptyInstructionSet("Cannot assemble a transaction without instructions")

        blockhash = await self.blockhash_provider.get_latest_blockhash()

        try:
            message = MessageV0.try_compile(
                payer=fee_payer,
                instructions=instructions,
                address_lookup_table_accounts=list(lookup_tables),
                recent_blockhash=blockhash,
            )
        except Exception as e:
            logger.error(f"Failed to compile message for {fee_payer}: {e}")
            raise SerializationFailed(f"Failed to compile transaction message: {e}") from e

        logger.info(
            f"Assembled v0 transaction: payer={fee_payer} "
            f"instructions={len(instructions)} lookup_tables={len(lookup_tables)} "
            f"blockhash={blockhash}"
        )
        return unsigned_transaction(message)
