"""Tests for SolanaClient and on-chain account layouts"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.pubkey import Pubkey

from blink_actions.core.client import (
    LOOKUP_TABLE_META,
    MAX_ACCOUNTS_PER_CALL,
    MINT_LAYOUT,
    SolanaClient,
    parse_lookup_table,
)
from blink_actions.core.errors import InvalidAddress, UpstreamUnavailable


def lookup_table_data(addresses, type_index=1):
    meta = LOOKUP_TABLE_META.build({
        "type_index": type_index,
        "deactivation_slot": 2**64 - 1,
        "last_extended_slot": 1234,
        "last_extended_slot_start_index": 0,
        "has_authority": True,
        "authority": bytes(Pubkey.new_unique()),
    })
    return meta + b"".join(bytes(a) for a in addresses)


def mint_data(decimals=6, initialized=True):
    return MINT_LAYOUT.build({
        "mint_authority_option": 0,
        "mint_authority": bytes(32),
        "supply": 1_000_000,
        "decimals": decimals,
        "is_initialized": initialized,
    }) + bytes(36)


@pytest.fixture
def rpc():
    """Mocked solana-py AsyncClient"""
    return MagicMock()


@pytest.fixture
def solana_client(rpc):
    client = SolanaClient("http://localhost:8899")
    client._client = rpc
    return client


class TestParseLookupTable:

    def test_meta_is_56_bytes(self):
        assert LOOKUP_TABLE_META.sizeof() == 56

    def test_parses_addresses(self):
        key = Pubkey.new_unique()
        addresses = [Pubkey.new_unique() for _ in range(3)]

        table = parse_lookup_table(key, lookup_table_data(addresses))

        assert table.key == key
        assert list(table.addresses) == addresses

    def test_uninitialized_table_rejected(self):
        with pytest.raises(ValueError):
            parse_lookup_table(Pubkey.new_unique(), lookup_table_data([], type_index=0))

    def test_truncated_data_rejected(self):
        data = lookup_table_data([Pubkey.new_unique()])
        with pytest.raises(ValueError):
            parse_lookup_table(Pubkey.new_unique(), data[:-5])
        with pytest.raises(ValueError):
            parse_lookup_table(Pubkey.new_unique(), data[:20])


class TestLatestBlockhash:

    @pytest.mark.asyncio
    async def test_returns_blockhash(self, solana_client, rpc):
        blockhash = Hash.new_unique()
        rpc.get_latest_blockhash = AsyncMock(return_value=MagicMock(
            value=MagicMock(blockhash=blockhash, last_valid_block_height=100)
        ))

        assert await solana_client.get_latest_blockhash() == blockhash

    @pytest.mark.asyncio
    async def test_never_cached(self, solana_client, rpc):
        rpc.get_latest_blockhash = AsyncMock(side_effect=[
            MagicMock(value=MagicMock(blockhash=Hash.new_unique())),
            MagicMock(value=MagicMock(blockhash=Hash.new_unique())),
        ])

        first = await solana_client.get_latest_blockhash()
        second = await solana_client.get_latest_blockhash()

        assert first != second
        assert rpc.get_latest_blockhash.await_count == 2

    @pytest.mark.asyncio
    async def test_rpc_error_maps_to_upstream_unavailable(self, solana_client, rpc):
        rpc.get_latest_blockhash = AsyncMock(side_effect=ConnectionError("boom"))

        with pytest.raises(UpstreamUnavailable):
            await solana_client.get_latest_blockhash()

    @pytest.mark.asyncio
    async def test_missing_value(self, solana_client, rpc):
        rpc.get_latest_blockhash = AsyncMock(return_value=MagicMock(value=None))

        with pytest.raises(UpstreamUnavailable):
            await solana_client.get_latest_blockhash()


class TestLookupTables:

    @pytest.mark.asyncio
    async def test_empty_request_skips_rpc(self, solana_client, rpc):
        rpc.get_multiple_accounts = AsyncMock()

        assert await solana_client.get_address_lookup_tables([]) == []
        rpc.get_multiple_accounts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolves_in_order(self, solana_client, rpc):
        keys = [Pubkey.new_unique(), Pubkey.new_unique()]
        contents = [[Pubkey.new_unique()], [Pubkey.new_unique(), Pubkey.new_unique()]]
        rpc.get_multiple_accounts = AsyncMock(return_value=MagicMock(value=[
            MagicMock(data=lookup_table_data(addresses)) for addresses in contents
        ]))

        tables = await solana_client.get_address_lookup_tables(keys)

        assert [t.key for t in tables] == keys
        assert [list(t.addresses) for t in tables] == contents
        rpc.get_multiple_accounts.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_table(self, solana_client, rpc):
        rpc.get_multiple_accounts = AsyncMock(return_value=MagicMock(value=[None]))

        with pytest.raises(UpstreamUnavailable, match="not found"):
            await solana_client.get_address_lookup_tables([Pubkey.new_unique()])

    @pytest.mark.asyncio
    async def test_too_many_tables(self, solana_client):
        keys = [Pubkey.new_unique() for _ in range(MAX_ACCOUNTS_PER_CALL + 1)]

        with pytest.raises(UpstreamUnavailable):
            await solana_client.get_address_lookup_tables(keys)


class TestMintDecimals:

    @pytest.mark.asyncio
    async def test_reads_decimals(self, solana_client, rpc):
        rpc.get_account_info = AsyncMock(return_value=MagicMock(value=MagicMock(data=mint_data(5))))

        assert await solana_client.get_mint_decimals(Pubkey.new_unique()) == 5

    @pytest.mark.asyncio
    async def test_missing_mint(self, solana_client, rpc):
        rpc.get_account_info = AsyncMock(return_value=MagicMock(value=None))

        with pytest.raises(InvalidAddress):
            await solana_client.get_mint_decimals(Pubkey.new_unique())

    @pytest.mark.asyncio
    async def test_not_a_mint(self, solana_client, rpc):
        rpc.get_account_info = AsyncMock(return_value=MagicMock(value=MagicMock(data=b"\x00" * 10)))

        with pytest.raises(InvalidAddress):
            await solana_client.get_mint_decimals(Pubkey.new_unique())

    @pytest.mark.asyncio
    async def test_uninitialized_mint(self, solana_client, rpc):
        rpc.get_account_info = AsyncMock(
            return_value=MagicMock(value=MagicMock(data=mint_data(initialized=False)))
        )

        with pytest.raises(InvalidAddress):
            await solana_client.get_mint_decimals(Pubkey.new_unique())

    @pytest.mark.asyncio
    async def test_rpc_error(self, solana_client, rpc):
        rpc.get_account_info = AsyncMock(side_effect=TimeoutError())

        with pytest.raises(UpstreamUnavailable):
            await solana_client.get_mint_decimals(Pubkey.new_unique())


@pytest.mark.asyncio
async def test_close_releases_client(solana_client, rpc):
    rpc.close = AsyncMock()

    await solana_client.close()

    rpc.close.assert_awaited_once()
    assert solana_client._client is None
