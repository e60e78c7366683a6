"""
Static configuration for the action service.

Everything is read once at start-up from the environment (a local .env file
is honoured via python-dotenv) into frozen dataclasses. Adapters receive
their own config object at construction and never look at the environment.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

LAMPORTS_PER_SOL = 1_000_000_000
SOL_DECIMALS = 9

SOL_MINT = "So11111111111111111111111111111111111111112"

# Symbols accepted on either side of a swap pair id ("SOL-USDC").
# (symbol, mint, decimals)
DEFAULT_SWAP_TOKENS: tuple[tuple[str, str, int], ...] = (
    ("SOL", SOL_MINT, SOL_DECIMALS),
    ("USDC", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6),
    ("USDT", "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", 6),
    ("BONK", "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", 5),
    ("JUP", "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", 6),
)

DONATE_ICON = (
    "https://ucarecdn.com/7aa46c85-08a4-4bc7-9376-88ec48bb1f43/"
    "-/preview/880x864/-/quality/smart/-/format/auto/"
)


@dataclass(frozen=True)
class ActionCard:
    """Static presentation of an action in a blink client"""
    icon: str
    title: str
    description: str


@dataclass(frozen=True)
class DonateConfig:
    destination_wallet: str = "3h4AtoLTh3bWwaLhdtgQtcC3a3Tokb8NJbtqR9rhp7p6"
    amount_options: tuple[Decimal, ...] = (Decimal("1"), Decimal("5"), Decimal("10"))
    # Used when POST /api/donate carries no amount in the path.
    default_amount: Decimal = Decimal("1")
    card: ActionCard = ActionCard(
        icon=DONATE_ICON,
        title="Donate to Alice",
        description="Cybersecurity Enthusiast | Support my research with a donation.",
    )


@dataclass(frozen=True)
class BuyConfig:
    amount_options: tuple[Decimal, ...] = (
        Decimal("0.01"), Decimal("0.05"), Decimal("0.1"),
        Decimal("0.5"), Decimal("1"), Decimal("5"),
    )
    default_amount: Decimal = Decimal("0.05")
    slippage_percent: int = 35
    priority_fee_sol: Decimal = Decimal("0.005")
    pool: str = "pump"
    card: ActionCard = ActionCard(
        icon=DONATE_ICON,
        title="Buy on pump.fun",
        description="Buy a pump.fun token with SOL.",
    )


@dataclass(frozen=True)
class SwapConfig:
    amount_options: tuple[Decimal, ...] = (Decimal("0.1"), Decimal("0.5"), Decimal("1"))
    default_amount: Decimal = Decimal("0.1")
    slippage_bps: int = 50
    tokens: tuple[tuple[str, str, int], ...] = DEFAULT_SWAP_TOKENS
    card: ActionCard = ActionCard(
        icon="https://jup.ag/svg/jupiter-logo.svg",
        title="Swap on Jupiter",
        description="Swap tokens at the best route found by Jupiter.",
    )

    def lookup_token(self, symbol: str) -> tuple[str, int] | None:
        """(mint, decimals) for a configured symbol, case-insensitive."""
        symbol = symbol.upper()
        for known, mint, decimals in self.tokens:
            if known == symbol:
                return mint, decimals
        return None

    def decimals_for_mint(self, mint: str) -> int | None:
        for _, known_mint, decimals in self.tokens:
            if known_mint == mint:
                return decimals
        return None


@dataclass(frozen=True)
class Settings:
    rpc_endpoint: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    http_timeout: float = 10.0
    pumpportal_url: str = "https://pumpportal.fun/api"
    jupiter_url: str = "https://lite-api.jup.ag/swap/v1"
    jupiter_api_key: str | None = None
    donate: DonateConfig = DonateConfig()
    buy: BuyConfig = BuyConfig()
    swap: SwapConfig = SwapConfig()


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {raw!r}")
    return value


def _env_decimal_list(name: str, default: tuple[Decimal, ...]) -> tuple[Decimal, ...]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    values = []
    for part in raw.split(","):
        try:
            value = Decimal(part.strip())
        except InvalidOperation as e:
            raise ValueError(f"{name} must be a comma-separated list of numbers, got {raw!r}") from e
        if not value.is_finite() or value <= 0:
            raise ValueError(f"{name} entries must be positive, got {part.strip()!r}")
        values.append(value)
    return tuple(values)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from environment variables.

    Args:
        dotenv: Load a .env file from the working directory first

    Returns:
        Immutable Settings

    Raises:
        ValueError: If a variable is present but malformed
    """
    if dotenv:
        load_dotenv()

    donate = DonateConfig(
        destination_wallet=os.getenv(
            "DONATION_DESTINATION_WALLET", DonateConfig.destination_wallet
        ),
        amount_options=_env_decimal_list(
            "DONATION_AMOUNT_SOL_OPTIONS", DonateConfig.amount_options
        ),
        default_amount=_env_decimal(
            "DEFAULT_DONATION_AMOUNT_SOL", DonateConfig.default_amount
        ),
    )
    buy = BuyConfig(
        slippage_percent=_env_int("PUMP_SLIPPAGE", BuyConfig.slippage_percent),
        priority_fee_sol=_env_decimal("PUMP_PRIORITY_FEE", BuyConfig.priority_fee_sol),
    )
    swap = SwapConfig(
        slippage_bps=_env_int("JUPITER_SLIPPAGE_BPS", SwapConfig.slippage_bps),
    )

    return Settings(
        rpc_endpoint=os.getenv("SOLANA_RPC_ENDPOINT", Settings.rpc_endpoint),
        commitment=os.getenv("SOLANA_COMMITMENT", Settings.commitment),
        host=os.getenv("HOST", Settings.host),
        port=_env_int("PORT", Settings.port),
        log_level=os.getenv("LOG_LEVEL", Settings.log_level),
        http_timeout=float(_env_decimal("HTTP_TIMEOUT", Decimal(str(Settings.http_timeout)))),
        pumpportal_url=os.getenv("PUMPPORTAL_API_URL", Settings.pumpportal_url).rstrip("/"),
        jupiter_url=os.getenv("JUPITER_API_URL", Settings.jupiter_url).rstrip("/"),
        jupiter_api_key=os.getenv("JUPITER_API_KEY") or None,
        donate=donate,
        buy=buy,
        swap=swap,
    )
