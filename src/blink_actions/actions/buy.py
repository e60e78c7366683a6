"""
Buy action: purchase a pump.fun token through PumpPortal.

PumpPortal hands back a complete transaction. Its instructions are lifted
out and re-assembled around our own fresh blockhash with the buyer as fee
payer; the upstream blockhash and payer are discarded.
"""

from decimal import Decimal

from solders.message import MessageV0

from blink_actions.actions.base import (
    ActionGetResponse,
    ActionPostResponse,
    ActionRequest,
    ActionType,
    amount_menu,
    format_amount,
)
from blink_actions.config import LAMPORTS_PER_SOL, ActionCard, BuyConfig
from blink_actions.core.client import SolanaClient
from blink_actions.core.errors import QuoteUnavailable
from blink_actions.core.instructions import (
    CurrencyUnit,
    decompose_message,
    parse_amount,
    parse_pubkey,
    require_instructions,
)
from blink_actions.core.serializer import serialize_transaction
from blink_actions.core.transaction import TransactionAssembler
from blink_actions.platforms.pumpportal import PumpPortalClient
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)


class BuyAction:
    """Maps buy requests onto PumpPortal trade-local -> assemble -> serialize."""

    action_type = ActionType.BUY
    base_path = "/api/pump"

    def __init__(
        self,
        config: BuyConfig,
        assembler: TransactionAssembler,
        solana_client: SolanaClient,
        pumpportal: PumpPortalClient,
    ):
        self.config = config
        self.assembler = assembler
        self.solana_client = solana_client
        self.pumpportal = pumpportal

    async def describe(self, mint: str) -> ActionGetResponse:
        """Buy menu for a mint, decorated with PumpPortal token metadata when available."""
        mint_key = parse_pubkey(mint, "mint")
        card = self.config.card
        title = f"Buy {mint_key}"
        try:
            info = await self.pumpportal.token_info(mint_key)
        except QuoteUnavailable as e:
            logger.warning(f"[BUY] No token info for {mint_key}, using default card: {e.message}")
        else:
            card = ActionCard(
                icon=info.image or card.icon,
                title=card.title,
                description=info.description or card.description,
            )
            title = f"Buy {info.name}"

        return amount_menu(
            card,
            label=str(mint_key),
            base_href=f"{self.base_path}/{mint_key}",
            options=self.config.amount_options,
            unit_label="SOL",
            submit_label="Buy",
            title=title,
        )

    async def build(self, request: ActionRequest) -> ActionPostResponse:
        """Unsigned buy transaction for ``request.amount`` SOL of the mint.

        Raises:
            InvalidAddress: Bad account or mint
            InvalidAmount: Bad amount; raised before any network call
            QuoteUnavailable: PumpPortal failed or returned no instructions
            UpstreamUnavailable: Lookup table or blockhash fetch failed
        """
        sender = parse_pubkey(request.sender_address, "account")
        mint = parse_pubkey(request.target_identifier, "mint")
        if request.amount is None:
            lamports = parse_amount(self.config.default_amount, CurrencyUnit.SOL)
        else:
            lamports = parse_amount(request.amount, request.unit)
        amount_sol = Decimal(lamports) / LAMPORTS_PER_SOL

        upstream = await self.pumpportal.trade_local(
            public_key=sender,
            mint=mint,
            amount=amount_sol,
            action="buy",
            denominated_in_sol=True,
            slippage=self.config.slippage_percent,
            priority_fee=self.config.priority_fee_sol,
            pool=self.config.pool,
        )

        message = upstream.message
        lookup_keys = []
        if isinstance(message, MessageV0):
            lookup_keys = [lookup.account_key for lookup in message.address_table_lookups]
        tables = await self.solana_client.get_address_lookup_tables(lookup_keys)

        instructions = require_instructions(decompose_message(message, tables), "PumpPortal")
        tx = await self.assembler.assemble(instructions, sender, tables)

        logger.info(f"[BUY] {format_amount(amount_sol)} SOL of {mint} for {sender}")
        return ActionPostResponse(
            transaction=serialize_transaction(tx),
            message=f"Buy {format_amount(amount_sol)} SOL of {mint}",
        )
