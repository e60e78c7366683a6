"""
Actions HTTP server.

GET endpoints return the action menus, POST endpoints return an unsigned
base64 transaction for the wallet in the body. All transaction work happens
in the action adapters; this module only parses requests and renders JSON.
"""

from dataclasses import dataclass

import aiohttp
from aiohttp import web

from blink_actions.actions.base import ActionRequest, ActionType
from blink_actions.actions.buy import BuyAction
from blink_actions.actions.donate import DonateAction
from blink_actions.actions.swap import SwapAction
from blink_actions.config import Settings, load_settings
from blink_actions.core.client import SolanaClient
from blink_actions.core.errors import ActionError, InvalidRequest, SerializationFailed
from blink_actions.core.instructions import CurrencyUnit
from blink_actions.core.transaction import TransactionAssembler
from blink_actions.platforms.jupiter import JupiterClient
from blink_actions.platforms.pumpportal import PumpPortalClient
from blink_actions.utils.logger import get_logger, setup_console_logging
from blink_actions.utils.trace_context import TraceContext, get_current_trace

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,PUT,OPTIONS",
    "Access-Control-Allow-Headers": (
        "Content-Type, Authorization, Content-Encoding, Accept-Encoding"
    ),
    "Access-Control-Expose-Headers": "X-Action-Version, X-Blockchain-Ids",
    "X-Action-Version": "2.1.3",
    "X-Blockchain-Ids": "solana:5eykt4UsFv8P8NJdTREpY1vzqKqZKvdp",
}


@dataclass
class ActionSet:
    donate: DonateAction
    buy: BuyAction
    swap: SwapAction


SETTINGS_KEY = web.AppKey("settings", Settings)
ACTIONS_KEY = web.AppKey("actions", ActionSet)


def build_actions(
    settings: Settings,
    session: aiohttp.ClientSession,
    solana_client: SolanaClient,
) -> ActionSet:
    """Wire adapters to their shared collaborators."""
    assembler = TransactionAssembler(solana_client)
    pumpportal = PumpPortalClient(session, settings.pumpportal_url)
    jupiter = JupiterClient(session, settings.jupiter_url, settings.jupiter_api_key)
    return ActionSet(
        donate=DonateAction(settings.donate, assembler),
        buy=BuyAction(settings.buy, assembler, solana_client, pumpportal),
        swap=SwapAction(settings.swap, assembler, solana_client, jupiter),
    )


async def upstream_context(app: web.Application):
    """One HTTP session and one RPC client for the lifetime of the app."""
    settings = app[SETTINGS_KEY]
    session = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.http_timeout)
    )
    solana_client = SolanaClient(settings.rpc_endpoint, settings.commitment)
    app[ACTIONS_KEY] = build_actions(settings, session, solana_client)
    logger.info(f"Upstreams ready: rpc={settings.rpc_endpoint}")

    yield

    await solana_client.close()
    await session.close()
    logger.info("Upstreams closed")


# ============================================
# Middlewares (outermost first)
# ============================================

@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(status=200, headers=CORS_HEADERS)
    response = await handler(request)
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def trace_middleware(request: web.Request, handler):
    trace = TraceContext.start(request.method, request.path)
    try:
        response = await handler(request)
        trace.mark_response(response.status)
        response.headers["X-Trace-Id"] = trace.trace_id
        build = trace.build_latency_ms
        logger.info(
            f"{request.method} {request.path} -> {response.status} "
            f"({trace.total_latency_ms:.1f} ms"
            + (f", build {build:.1f} ms" if build is not None else "")
            + ")"
        )
        logger.debug(f"Trace: {trace.to_dict()}")
        return response
    finally:
        trace.finish()


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except ActionError as e:
        level = logger.error if e.status >= 500 else logger.warning
        level(f"{type(e).__name__}: {e.message}")
        return web.json_response(e.to_dict(), status=e.status)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response({"error": e.reason}, status=e.status)
    except Exception as e:
        logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
        return web.json_response({"error": "Internal server error"}, status=500)


# ============================================
# Request parsing
# ============================================

async def read_account(request: web.Request):
    """The ``account`` field of a JSON object body (validated by the adapter)."""
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidRequest("Request body must be JSON") from e
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return body.get("account")


def read_unit(request: web.Request) -> CurrencyUnit:
    raw = request.query.get("unit", CurrencyUnit.SOL.value)
    try:
        return CurrencyUnit(raw.lower())
    except ValueError as e:
        raise InvalidRequest(f"Unknown unit {raw!r}, expected 'sol' or 'lamports'") from e


async def build_response(request: web.Request, action, action_type: ActionType, target=None):
    account = await read_account(request)
    action_request = ActionRequest(
        action_type=action_type,
        sender_address=account,
        target_identifier=target,
        amount=request.match_info.get("amount"),
        unit=read_unit(request),
    )
    result = await action.build(action_request)
    if not result.transaction:
        raise SerializationFailed("Built an empty transaction")

    trace = get_current_trace()
    if trace:
        trace.mark_build_complete(action_type.value, str(account), target=target)
    return web.json_response(result.to_dict())


# ============================================
# Handlers
# ============================================

async def actions_json(request: web.Request) -> web.Response:
    return web.json_response(
        {"rules": [{"pathPattern": "/api/**", "apiPath": "/api/**"}]}
    )


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def donate_get(request: web.Request) -> web.Response:
    action = request.app[ACTIONS_KEY].donate
    return web.json_response(action.describe(request.match_info.get("amount")).to_dict())


async def donate_post(request: web.Request) -> web.Response:
    return await build_response(request, request.app[ACTIONS_KEY].donate, ActionType.DONATE)


async def buy_get(request: web.Request) -> web.Response:
    action = request.app[ACTIONS_KEY].buy
    menu = await action.describe(request.match_info["mint"])
    return web.json_response(menu.to_dict())


async def buy_post(request: web.Request) -> web.Response:
    return await build_response(
        request, request.app[ACTIONS_KEY].buy, ActionType.BUY, request.match_info["mint"]
    )


async def swap_get(request: web.Request) -> web.Response:
    action = request.app[ACTIONS_KEY].swap
    return web.json_response(action.describe(request.match_info["pair"]).to_dict())


async def swap_post(request: web.Request) -> web.Response:
    return await build_response(
        request, request.app[ACTIONS_KEY].swap, ActionType.SWAP, request.match_info["pair"]
    )


def create_app(settings: Settings | None = None, actions: ActionSet | None = None) -> web.Application:
    """Build the aiohttp application.

    Args:
        settings: Service settings, loaded from the environment when None
        actions: Pre-built adapters; when None they are created on start-up
            around a shared aiohttp session and SolanaClient

    Returns:
        Application ready for web.run_app or a test client
    """
    settings = settings or load_settings()
    app = web.Application(middlewares=[cors_middleware, trace_middleware, error_middleware])
    app[SETTINGS_KEY] = settings
    if actions is None:
        app.cleanup_ctx.append(upstream_context)
    else:
        app[ACTIONS_KEY] = actions

    app.router.add_get("/actions.json", actions_json)
    app.router.add_get("/health", health)

    app.router.add_get("/api/donate", donate_get)
    app.router.add_get("/api/donate/{amount}", donate_get)
    app.router.add_post("/api/donate", donate_post)
    app.router.add_post("/api/donate/{amount}", donate_post)

    app.router.add_get("/api/pump/{mint}", buy_get)
    app.router.add_post("/api/pump/{mint}", buy_post)
    app.router.add_post("/api/pump/{mint}/{amount}", buy_post)

    app.router.add_get("/api/jupiter/swap/{pair}", swap_get)
    app.router.add_post("/api/jupiter/swap/{pair}", swap_post)
    app.router.add_post("/api/jupiter/swap/{pair}/{amount}", swap_post)
    return app


def main() -> None:
    settings = load_settings()
    setup_console_logging(settings.log_level)
    logger.info(f"Starting blink actions on http://{settings.host}:{settings.port}")
    web.run_app(create_app(settings), host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
