"""
Swap action: token-to-token swap routed by Jupiter.

A pair id is ``<IN>-<OUT>`` where each side is a configured symbol (SOL,
USDC, ...) or a raw mint address.
"""

from dataclasses import dataclass
from decimal import Decimal

from solders.pubkey import Pubkey

from blink_actions.actions.base import (
    ActionGetResponse,
    ActionPostResponse,
    ActionRequest,
    ActionType,
    amount_menu,
    format_amount,
)
from blink_actions.config import SwapConfig
from blink_actions.core.client import SolanaClient
from blink_actions.core.errors import InvalidRequest
from blink_actions.core.instructions import (
    CurrencyUnit,
    parse_decimal,
    parse_pubkey,
    to_base_units,
)
from blink_actions.core.serializer import serialize_transaction
from blink_actions.core.transaction import TransactionAssembler
from blink_actions.platforms.jupiter import JupiterClient
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SwapPair:
    input_mint: Pubkey
    output_mint: Pubkey
    input_label: str
    output_label: str
    input_decimals: int | None = None   # None -> read from the mint account


def _short(mint: Pubkey) -> str:
    text = str(mint)
    return f"{text[:4]}...{text[-4:]}"


class SwapAction:
    """Maps swap requests onto Jupiter quote/swap-instructions -> assemble -> serialize."""

    action_type = ActionType.SWAP
    base_path = "/api/jupiter/swap"

    def __init__(
        self,
        config: SwapConfig,
        assembler: TransactionAssembler,
        solana_client: SolanaClient,
        jupiter: JupiterClient,
    ):
        self.config = config
        self.assembler = assembler
        self.solana_client = solana_client
        self.jupiter = jupiter

    def _resolve_side(self, side: str) -> tuple[Pubkey, str, int | None]:
        known = self.config.lookup_token(side)
        if known is not None:
            mint, decimals = known
            return Pubkey.from_string(mint), side.upper(), decimals
        mint = parse_pubkey(side, "token mint")
        return mint, _short(mint), self.config.decimals_for_mint(str(mint))

    def resolve_pair(self, pair: str) -> SwapPair:
        """Parse ``IN-OUT`` without touching the network.

        Raises:
            InvalidRequest: Malformed pair id or identical sides
            InvalidAddress: A side is neither a known symbol nor a mint address
        """
        parts = (pair or "").split("-")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise InvalidRequest(f"Invalid swap pair {pair!r}, expected <INPUT>-<OUTPUT>")

        input_mint, input_label, input_decimals = self._resolve_side(parts[0].strip())
        output_mint, output_label, _ = self._resolve_side(parts[1].strip())
        if input_mint == output_mint:
            raise InvalidRequest("Swap input and output tokens must differ")

        return SwapPair(
            input_mint=input_mint,
            output_mint=output_mint,
            input_label=input_label,
            output_label=output_label,
            input_decimals=input_decimals,
        )

    def describe(self, pair: str) -> ActionGetResponse:
        swap_pair = self.resolve_pair(pair)
        return amount_menu(
            self.config.card,
            label=f"{format_amount(self.config.default_amount)} {swap_pair.input_label}",
            base_href=f"{self.base_path}/{pair}",
            options=self.config.amount_options,
            unit_label=swap_pair.input_label,
            submit_label="Swap",
            title=f"Swap {swap_pair.input_label} for {swap_pair.output_label}",
        )

    async def build(self, request: ActionRequest) -> ActionPostResponse:
        """Unsigned swap transaction along the quoted route.

        ``request.unit`` SOL means UI units of the input token, LAMPORTS
        means its raw base units.

        The amount's format and sign are checked before any network call.
        Its precision depends on the input token's decimals, so for a mint
        outside the configured token table that check (and the u64 bound)
        follows the one getAccountInfo read of the mint. Quote and
        blockhash calls still happen only after it passes.

        Raises:
            InvalidAddress: Bad account or pair mint
            InvalidAmount: Bad amount; format checked before any network call
            InvalidRequest: Bad pair id
            QuoteUnavailable: Jupiter failed or returned no instructions
            UpstreamUnavailable: Mint, lookup table or blockhash fetch failed
        """
        sender = parse_pubkey(request.sender_address, "account")
        pair = self.resolve_pair(request.target_identifier)

        if request.amount is None:
            amount, unit = self.config.default_amount, CurrencyUnit.SOL
        else:
            amount, unit = request.amount, request.unit

        if unit is CurrencyUnit.LAMPORTS:
            base_units = to_base_units(amount, 0)
        else:
            parse_decimal(amount)
            decimals = pair.input_decimals
            if decimals is None:
                decimals = await self.solana_client.get_mint_decimals(pair.input_mint)
            base_units = to_base_units(amount, decimals)

        quote = await self.jupiter.get_quote(
            pair.input_mint, pair.output_mint, base_units, self.config.slippage_bps
        )
        quoted = await self.jupiter.get_swap_instructions(quote, sender)
        tables = await self.solana_client.get_address_lookup_tables(quoted.lookup_table_addresses)

        tx = await self.assembler.assemble(quoted.instructions, sender, tables)

        logger.info(
            f"[SWAP] {base_units} base units {pair.input_label} -> {pair.output_label} "
            f"(expected out {quoted.out_amount}) for {sender}"
        )
        shown = amount if unit is CurrencyUnit.SOL else Decimal(base_units)
        return ActionPostResponse(
            transaction=serialize_transaction(tx),
            message=f"Swap {format_amount(Decimal(str(shown)))} {pair.input_label} for {pair.output_label}",
        )
