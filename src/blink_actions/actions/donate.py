"""
Donate action: a native SOL transfer to a fixed wallet.
"""

from decimal import Decimal

from blink_actions.actions.base import (
    ActionGetResponse,
    ActionPostResponse,
    ActionRequest,
    ActionType,
    amount_menu,
    format_amount,
)
from blink_actions.config import LAMPORTS_PER_SOL, DonateConfig
from blink_actions.core.instructions import (
    CurrencyUnit,
    compose_transfer,
    parse_amount,
    parse_decimal,
    parse_pubkey,
)
from blink_actions.core.serializer import serialize_transaction
from blink_actions.core.transaction import TransactionAssembler
from blink_actions.utils.logger import get_logger

logger = get_logger(__name__)


class DonateAction:
    """Maps donate requests onto compose_transfer -> assemble -> serialize."""

    action_type = ActionType.DONATE
    base_path = "/api/donate"

    def __init__(self, config: DonateConfig, assembler: TransactionAssembler):
        self.config = config
        self.assembler = assembler
        self.destination = parse_pubkey(config.destination_wallet, "destination wallet")

    def describe(self, amount: str | None = None) -> ActionGetResponse:
        """Menu of preset amounts, or a single card for one amount."""
        card = self.config.card
        if amount is None:
            return amount_menu(
                card,
                label=f"{format_amount(self.config.default_amount)} SOL",
                base_href=self.base_path,
                options=self.config.amount_options,
                unit_label="SOL",
                submit_label="Donate",
            )

        value = parse_decimal(amount)
        return ActionGetResponse(
            icon=card.icon,
            title=card.title,
            description=card.description,
            label=f"{format_amount(value)} SOL",
        )

    async def build(self, request: ActionRequest) -> ActionPostResponse:
        """Unsigned transfer of the requested (or default) amount.

        Raises:
            InvalidAddress: Bad sender address
            InvalidAmount: Bad amount; raised before any network call
            UpstreamUnavailable: Blockhash fetch failed
        """
        sender = parse_pubkey(request.sender_address, "account")
        if request.amount is None:
            amount, unit = self.config.default_amount, CurrencyUnit.SOL
        else:
            amount, unit = request.amount, request.unit
        lamports = parse_amount(amount, unit)

        instructions = compose_transfer(sender, self.destination, lamports)
        tx = await self.assembler.assemble(instructions, sender)

        sol = format_amount(Decimal(lamports) / LAMPORTS_PER_SOL)
        logger.info(f"[DONATE] {sol} SOL from {sender} to {self.destination}")
        return ActionPostResponse(
            transaction=serialize_transaction(tx),
            message=f"Donate {sol} SOL",
        )
