"""Action adapters: donate, buy (PumpPortal), swap (Jupiter)."""

from blink_actions.actions.base import (
    ActionGetResponse,
    ActionParameter,
    ActionPostResponse,
    ActionRequest,
    ActionType,
    LinkedAction,
)
from blink_actions.actions.buy import BuyAction
from blink_actions.actions.donate import DonateAction
from blink_actions.actions.swap import SwapAction, SwapPair

__all__ = [
    "ActionGetResponse",
    "ActionParameter",
    "ActionPostResponse",
    "ActionRequest",
    "ActionType",
    "BuyAction",
    "DonateAction",
    "LinkedAction",
    "SwapAction",
    "SwapPair",
]
