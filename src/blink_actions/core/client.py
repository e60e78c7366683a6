"""
Solana client abstraction - the network state provider.

Only read calls live here: latest blockhash, address lookup tables and mint
decimals. Nothing is cached; every call goes to the RPC endpoint.
"""

from construct import Bytes, Flag, Int8ul, Int32ul, Int64ul, Padding, Struct
from solana.rpc.async_api import AsyncClient
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.pubkey import Pubkey

from blink_actions.core.errors import InvalidAddress, UpstreamUnavailable
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)

# getMultipleAccounts hard limit
MAX_ACCOUNTS_PER_CALL = 100

# Address lookup table account: 56-byte meta, then packed 32-byte addresses
LOOKUP_TABLE_META = Struct(
    "type_index" / Int32ul,
    "deactivation_slot" / Int64ul,
    "last_extended_slot" / Int64ul,
    "last_extended_slot_start_index" / Int8ul,
    "has_authority" / Flag,
    "authority" / Bytes(32),
    Padding(2),
)
LOOKUP_TABLE_META_SIZE = LOOKUP_TABLE_META.sizeof()
LOOKUP_TABLE_TYPE = 1

# SPL Token mint account, up to the decimals byte (offset 44)
MINT_LAYOUT = Struct(
    "mint_authority_option" / Int32ul,
    "mint_authority" / Bytes(32),
    "supply" / Int64ul,
    "decimals" / Int8ul,
    "is_initialized" / Flag,
)


def parse_lookup_table(key: Pubkey, data: bytes) -> AddressLookupTableAccount:
    """Decode raw lookup table account data.

    Args:
        key: Address of the lookup table account
        data: Raw account data

    Returns:
        AddressLookupTableAccount usable by MessageV0.try_compile

    Raises:
        ValueError: If the data is not an initialized lookup table
    """
    if len(data) < LOOKUP_TABLE_META_SIZE:
        raise ValueError(f"Lookup table {key} data too short: {len(data)} bytes")
    meta = LOOKUP_TABLE_META.parse(data[:LOOKUP_TABLE_META_SIZE])
    if meta.type_index != LOOKUP_TABLE_TYPE:
        raise ValueError(f"Account {key} is not an initialized lookup table")

    body = data[LOOKUP_TABLE_META_SIZE:]
    if len(body) % 32:
        raise ValueError(f"Lookup table {key} has a truncated address list")
    addresses = [Pubkey.from_bytes(body[i:i + 32]) for i in range(0, len(body), 32)]
    return AddressLookupTableAccount(key, addresses)


class SolanaClient:
    """Abstraction for Solana RPC read operations."""

    def __init__(self, rpc_endpoint: str, commitment: str = "confirmed"):
        """Initialize Solana client with RPC endpoint.

        Args:
            rpc_endpoint: URL of the Solana RPC endpoint
            commitment: Commitment level used for every read
        """
        self.rpc_endpoint = rpc_endpoint
        self.commitment = commitment
        self._client = None

    async def get_client(self) -> AsyncClient:
        """Get or create the AsyncClient instance."""
        if self._client is None:
            self._client = AsyncClient(self.rpc_endpoint, commitment=self.commitment)
        return self._client

    async def close(self):
        """Close the client connection."""
        if self._client:
            await self._client.close()
            self._client = None

    async def get_latest_blockhash(self) -> Hash:
        """Fetch the latest blockhash. Never cached.

        Returns:
            Recent blockhash

        Raises:
            UpstreamUnavailable: If the RPC call fails
        """
        client = await self.get_client()
        try:
            response = await client.get_latest_blockhash(commitment=self.commitment)
        except Exception as e:
            logger.warning(f"getLatestBlockhash failed: {e!r}")
            raise UpstreamUnavailable("Failed to fetch latest blockhash") from e

        value = getattr(response, "value", None)
        if value is None:
            logger.warning(f"getLatestBlockhash returned no value: {response!r}")
            raise UpstreamUnavailable("Failed to fetch latest blockhash")

        logger.debug(f"Fetched blockhash {value.blockhash} (valid until height {value.last_valid_block_height})")
        return value.blockhash

    async def get_address_lookup_tables(
        self, addresses: list[Pubkey]
    ) -> list[AddressLookupTableAccount]:
        """Resolve address lookup tables in one getMultipleAccounts call.

        Args:
            addresses: Lookup table account addresses, order preserved

        Returns:
            Resolved lookup tables, same order as ``addresses``

        Raises:
            UpstreamUnavailable: If the RPC call fails or a table is missing
        """
        if not addresses:
            return []
        if len(addresses) > MAX_ACCOUNTS_PER_CALL:
            raise UpstreamUnavailable(
                f"Too many lookup tables requested: {len(addresses)}"
            )

        client = await self.get_client()
        try:
            response = await client.get_multiple_accounts(addresses, encoding="base64")
        except Exception as e:
            logger.warning(f"getMultipleAccounts for lookup tables failed: {e!r}")
            raise UpstreamUnavailable("Failed to fetch address lookup tables") from e

        tables = []
        for key, account in zip(addresses, response.value):
            if account is None:
                raise UpstreamUnavailable(f"Address lookup table {key} not found")
            try:
                tables.append(parse_lookup_table(key, bytes(account.data)))
            except ValueError as e:
                raise UpstreamUnavailable(str(e)) from e

        logger.debug(f"Resolved {len(tables)} lookup table(s)")
        return tables

    async def get_mint_decimals(self, mint: Pubkey) -> int:
        """Read decimals from an SPL Token (or Token-2022) mint account.

        Raises:
            InvalidAddress: If the account does not exist or is not a mint
            UpstreamUnavailable: If the RPC call fails
        """
        client = await self.get_client()
        try:
            response = await client.get_account_info(mint, encoding="base64")
        except Exception as e:
            logger.warning(f"getAccountInfo for mint {mint} failed: {e!r}")
            raise UpstreamUnavailable(f"Failed to fetch mint {mint}") from e

        if not response.value:
            raise InvalidAddress(f"Mint {mint} not found")

        data = bytes(response.value.data)
        if len(data) < MINT_LAYOUT.sizeof():
            raise InvalidAddress(f"Account {mint} is not a token mint")

        mint_state = MINT_LAYOUT.parse(data[:MINT_LAYOUT.sizeof()])
        if not mint_state.is_initialized:
            raise InvalidAddress(f"Mint {mint} is not initialized")
        return mint_state.decimals
