"""
Action request and response types.

Responses follow the Solana Actions schema; every field is explicit and
``to_dict`` drops the ones left as None.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from blink_actions.config import ActionCard
from blink_actions.core.instructions import CurrencyUnit


class ActionType(Enum):
    DONATE = "donate"
    BUY = "buy"
    SWAP = "swap"


@dataclass(frozen=True)
class ActionRequest:
    """One inbound POST, already split out of path and body."""
    action_type: ActionType
    sender_address: str
    target_identifier: Optional[str] = None   # mint for buy, pair id for swap
    amount: Optional[str] = None              # None -> adapter default
    unit: CurrencyUnit = CurrencyUnit.SOL


@dataclass
class ActionParameter:
    name: str
    label: str
    required: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "label": self.label, "required": self.required}


@dataclass
class LinkedAction:
    href: str
    label: str
    parameters: list[ActionParameter] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": "transaction", "href": self.href, "label": self.label}
        if self.parameters:
            data["parameters"] = [p.to_dict() for p in self.parameters]
        return data


@dataclass
class ActionGetResponse:
    icon: str
    title: str
    description: str
    label: str
    links: list[LinkedAction] = field(default_factory=list)
    disabled: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": "action",
            "icon": self.icon,
            "title": self.title,
            "description": self.description,
            "label": self.label,
        }
        if self.links:
            data["links"] = {"actions": [link.to_dict() for link in self.links]}
        if self.disabled:
            data["disabled"] = True
        if self.error:
            data["error"] = {"message": self.error}
        return data


@dataclass
class ActionPostResponse:
    transaction: str
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": "transaction", "transaction": self.transaction}
        if self.message:
            data["message"] = self.message
        return data


def format_amount(amount: Decimal) -> str:
    """Plain decimal text without exponent or trailing zeros: 10, 0.05"""
    return format(amount.normalize(), "f")


def amount_menu(
    card: ActionCard,
    label: str,
    base_href: str,
    options: tuple[Decimal, ...],
    unit_label: str,
    submit_label: str,
    title: Optional[str] = None,
) -> ActionGetResponse:
    """Preset amount links plus one free-form amount link.

    Args:
        card: Icon/title/description to show
        label: Top-level button label
        base_href: Path prefix; amounts are appended as a path segment
        options: Preset amounts
        unit_label: Unit shown next to amounts ("SOL", "USDC")
        submit_label: Label of the custom-amount button
        title: Overrides card.title
    """
    links = [
        LinkedAction(
            href=f"{base_href}/{format_amount(amount)}",
            label=f"{format_amount(amount)} {unit_label}",
        )
        for amount in options
    ]
    links.append(
        LinkedAction(
            href=f"{base_href}/{{amount}}",
            label=submit_label,
            parameters=[
                ActionParameter(name="amount", label=f"Enter a custom {unit_label} amount")
            ],
        )
    )
    return ActionGetResponse(
        icon=card.icon,
        title=title or card.title,
        description=card.description,
        label=label,
        links=links,
    )
