"""
Pytest fixtures for blink-actions tests
"""
import pytest
from unittest.mock import MagicMock, AsyncMock

from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.message import MessageV0
from solders.pubkey import Pubkey

from blink_actions.core.client import SolanaClient
from blink_actions.core.transaction import TransactionAssembler, unsigned_transaction


@pytest.fixture
def sender():
    return Pubkey.new_unique()


@pytest.fixture
def recipient():
    return Pubkey.new_unique()


@pytest.fixture
def blockhash():
    return Hash.new_unique()


@pytest.fixture
def mock_solana_client(blockhash):
    """SolanaClient with every RPC read mocked"""
    client = MagicMock(spec=SolanaClient)
    client.get_latest_blockhash = AsyncMock(return_value=blockhash)
    client.get_address_lookup_tables = AsyncMock(return_value=[])
    client.get_mint_decimals = AsyncMock(return_value=6)
    return client


@pytest.fixture
def assembler(mock_solana_client):
    return TransactionAssembler(mock_solana_client)


@pytest.fixture
def make_upstream_tx():
    """Build an unsigned v0 transaction the way a trade API would return it"""
    def _make(payer, instructions=None, upstream_blockhash=None):
        if instructions is None:
            program = Pubkey.new_unique()
            instructions = [
                Instruction(
                    program,
                    bytes([1, 2, 3]),
                    [
                        AccountMeta(payer, is_signer=True, is_writable=True),
                        AccountMeta(Pubkey.new_unique(), is_signer=False, is_writable=True),
                        AccountMeta(Pubkey.new_unique(), is_signer=False, is_writable=False),
                    ],
                ),
            ]
        message = MessageV0.try_compile(
            payer=payer,
            instructions=instructions,
            address_lookup_table_accounts=[],
            recent_blockhash=upstream_blockhash or Hash.new_unique(),
        )
        return unsigned_transaction(message)
    return _make
