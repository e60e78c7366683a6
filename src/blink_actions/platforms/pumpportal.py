"""
PumpPortal client.

trade-local returns a serialized VersionedTransaction for the requested
trade; token-info returns display metadata for a mint.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal

import aiohttp
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from blink_actions.core.errors import QuoteUnavailable, SerializationFailed
from blink_actions.core.serializer import deserialize_transaction
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)

PUMPPORTAL_API_URL = "https://pumpportal.fun/api"


@dataclass(frozen=True)
class TokenInfo:
    """Display metadata from /data/token-info"""
    mint: str
    name: str
    symbol: str
    image: str | None = None
    description: str | None = None


class PumpPortalClient:
    """Thin async client over a shared aiohttp session."""

    def __init__(self, session: aiohttp.ClientSession, base_url: str = PUMPPORTAL_API_URL):
        self.session = session
        self.base_url = base_url.rstrip("/")

    async def trade_local(
        self,
        public_key: Pubkey,
        mint: Pubkey,
        amount: Decimal,
        action: str = "buy",
        denominated_in_sol: bool = True,
        slippage: int = 35,
        priority_fee: Decimal = Decimal("0.005"),
        pool: str = "pump",
    ) -> VersionedTransaction:
        """Request a ready-made trade transaction.

        Args:
            public_key: Trader wallet (fee payer of the returned transaction)
            mint: Token to trade
            amount: SOL amount when denominated_in_sol, token amount otherwise
            action: "buy" or "sell"
            denominated_in_sol: Whether amount is in SOL
            slippage: Allowed slippage, percent
            priority_fee: Priority fee in SOL
            pool: Exchange to trade on, "pump" or "raydium"

        Returns:
            The upstream transaction, still carrying PumpPortal's blockhash

        Raises:
            QuoteUnavailable: On non-200 status, empty body, undecodable
                transaction or transport failure
        """
        body = {
            "publicKey": str(public_key),
            "action": action,
            "mint": str(mint),
            "denominatedInSol": "true" if denominated_in_sol else "false",
            "amount": float(amount),
            "slippage": slippage,
            "priorityFee": float(priority_fee),
            "pool": pool,
        }
        url = f"{self.base_url}/trade-local"
        logger.info(f"[PUMPPORTAL] {action} {amount} {'SOL' if denominated_in_sol else 'tokens'} of {mint} for {public_key}")

        try:
            async with self.session.post(url, json=body) as resp:
                if resp.status != 200:
                    error_text = await resp.text()
                    logger.warning(f"[PUMPPORTAL] trade-local failed: {resp.status} {error_text[:200]}")
                    raise QuoteUnavailable(
                        f"PumpPortal trade failed: {resp.status} {resp.reason or ''}".strip()
                    )
                data = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"[PUMPPORTAL] trade-local request error: {e!r}")
            raise QuoteUnavailable("PumpPortal is unreachable") from e

        if not data:
            raise QuoteUnavailable("PumpPortal returned an empty transaction")
        try:
            return deserialize_transaction(data)
        except SerializationFailed as e:
            raise QuoteUnavailable(f"PumpPortal returned an invalid transaction: {e.message}") from e

    async def token_info(self, mint: Pubkey) -> TokenInfo:
        """Fetch display metadata for a mint.

        Raises:
            QuoteUnavailable: If the lookup fails or the payload has no data
        """
        url = f"{self.base_url}/data/token-info"
        try:
            async with self.session.get(url, params={"ca": str(mint)}) as resp:
                if resp.status != 200:
                    raise QuoteUnavailable(f"PumpPortal token-info failed: {resp.status}")
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"[PUMPPORTAL] token-info request error: {e!r}")
            raise QuoteUnavailable("PumpPortal token-info is unreachable") from e

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data.get("name"):
            raise QuoteUnavailable(f"PumpPortal has no token info for {mint}")

        return TokenInfo(
            mint=str(mint),
            name=data["name"],
            symbol=data.get("symbol", ""),
            image=data.get("image"),
            description=data.get("description"),
        )
