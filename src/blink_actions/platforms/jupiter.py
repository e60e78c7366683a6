"""
Jupiter swap API client.

GET /quote finds a route; POST /swap-instructions turns the route into
account-resolved instructions plus the lookup tables they rely on.
"""

import asyncio
from dataclasses import dataclass, field

import aiohttp
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from blink_actions.core.errors import QuoteUnavailable
from blink_actions.core.instructions import instruction_from_json, require_instructions
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)

JUPITER_API_URL = "https://lite-api.jup.ag/swap/v1"


@dataclass
class QuotedInstructions:
    """Instruction set for one swap route, in execution order"""
    instructions: list[Instruction]
    lookup_table_addresses: list[Pubkey] = field(default_factory=list)
    out_amount: int = 0


class JupiterClient:
    """Async client for the Jupiter swap API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = JUPITER_API_URL,
        api_key: str | None = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.headers = {"x-api-key": api_key} if api_key else {}

    async def _request_json(self, method: str, url: str, **kwargs) -> dict:
        try:
            async with self.session.request(method, url, headers=self.headers, **kwargs) as resp:
                if resp.status != 200:
                    error_text = await resp.text()
                    logger.warning(f"[JUPITER] {method} {url} failed: {resp.status} {error_text[:200]}")
                    raise QuoteUnavailable(f"Jupiter request failed: {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"[JUPITER] {method} {url} error: {e!r}")
            raise QuoteUnavailable("Jupiter is unreachable") from e

        if not isinstance(data, dict):
            raise QuoteUnavailable("Jupiter returned a non-object payload")
        if data.get("error"):
            raise QuoteUnavailable(f"Jupiter error: {data['error']}")
        return data

    async def get_quote(
        self,
        input_mint: Pubkey,
        output_mint: Pubkey,
        amount: int,
        slippage_bps: int,
    ) -> dict:
        """Best route for swapping ``amount`` base units of input_mint.

        Raises:
            QuoteUnavailable: If no route is returned
        """
        params = {
            "inputMint": str(input_mint),
            "outputMint": str(output_mint),
            "amount": str(amount),
            "slippageBps": str(slippage_bps),
            "restrictIntermediateTokens": "true",
        }
        quote = await self._request_json("GET", f"{self.base_url}/quote", params=params)
        if not quote.get("routePlan"):
            raise QuoteUnavailable(f"Jupiter found no route from {input_mint} to {output_mint}")
        logger.info(
            f"[JUPITER] Quote {amount} {str(input_mint)[:8]}... -> "
            f"{quote.get('outAmount')} {str(output_mint)[:8]}..."
        )
        return quote

    async def get_swap_instructions(self, quote: dict, user_public_key: Pubkey) -> QuotedInstructions:
        """Resolve a quote into ordered instructions for ``user_public_key``.

        Order: compute budget, setup, swap, cleanup, other.

        Raises:
            QuoteUnavailable: If the response is malformed or has no swap
        """
        body = {
            "quoteResponse": quote,
            "userPublicKey": str(user_public_key),
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
            "prioritizationFeeLamports": "auto",
        }
        data = await self._request_json("POST", f"{self.base_url}/swap-instructions", json=body)

        if not data.get("swapInstruction"):
            raise QuoteUnavailable("Jupiter returned no swap instruction")

        raw = [
            *(data.get("computeBudgetInstructions") or []),
            *(data.get("setupInstructions") or []),
            data["swapInstruction"],
        ]
        if data.get("cleanupInstruction"):
            raw.append(data["cleanupInstruction"])
        raw.extend(data.get("otherInstructions") or [])

        instructions = require_instructions(
            (instruction_from_json(ix) for ix in raw), "Jupiter"
        )
        try:
            tables = [Pubkey.from_string(a) for a in data.get("addressLookupTableAddresses") or []]
        except (TypeError, ValueError) as e:
            raise QuoteUnavailable(f"Jupiter returned a bad lookup table address: {e}") from e

        try:
            out_amount = int(quote.get("outAmount", 0))
        except (TypeError, ValueError):
            out_amount = 0

        logger.info(f"[JUPITER] {len(instructions)} instruction(s), {len(tables)} lookup table(s)")
        return QuotedInstructions(
            instructions=instructions,
            lookup_table_addresses=tables,
            out_amount=out_amount,
        )
