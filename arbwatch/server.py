"""JSON status surface for the arbitrage engine (aiohttp)."""

import json
import time
from typing import Iterable

from aiohttp import web
from loguru import logger

from .core.engine import ArbitrageEngine
from .core.errors import ArbWatchError, InvalidSymbol

ENGINE_KEY = web.AppKey("engine", ArbitrageEngine)

DEFAULT_BOOK_DEPTH = 5


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _is_preflight(request: web.Request) -> bool:
    # Known paths without an OPTIONS route resolve to 405; unknown paths to 404
    if request.method != "OPTIONS":
        return False
    error = request.match_info.http_exception
    return error is None or isinstance(error, web.HTTPMethodNotAllowed)


def cors_middleware(origins: Iterable[str]):
    """Add CORS headers for the configured origins and answer preflights.

    Error responses raised as ``web.HTTPException`` carry the headers too.
    """
    origins = list(origins)
    allow_any = "*" in origins

    def add_headers(request: web.Request, response) -> None:
        origin = request.headers.get("Origin")
        if allow_any:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin in origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"

    @web.middleware
    async def cors(request: web.Request, handler):
        if _is_preflight(request):
            response = web.Response(status=204)
        else:
            try:
                response = await handler(request)
            except web.HTTPException as e:
                add_headers(request, e)
                raise

        add_headers(request, response)
        return response

    return cors


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Map exchange errors to JSON error responses."""
    try:
        return await handler(request)
    except InvalidSymbol as e:
        return _error(400, str(e))
    except ArbWatchError as e:
        logger.warning(f"{request.method} {request.path} failed: {type(e).__name__}: {e}")
        return _error(502, str(e))


async def get_status(request: web.Request) -> web.Response:
    return web.json_response(request.app[ENGINE_KEY].get_status())


async def get_opportunity(request: web.Request) -> web.Response:
    return web.json_response(request.app[ENGINE_KEY].get_latest_result())


async def start_engine(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    started = await engine.start()
    message = "Engine started" if started else "Engine already running"
    return web.json_response({"message": message, "status": engine.get_status()})


async def stop_engine(request: web.Request) -> web.Response:
    engine = request.app[ENGINE_KEY]
    stopped = await engine.stop()
    message = "Engine stopped" if stopped else "Engine not running"
    return web.json_response({"message": message, "status": engine.get_status()})


async def get_server_time(request: web.Request) -> web.Response:
    return web.json_response({"server_time": int(time.time() * 1000)})


async def _exchange_for(request: web.Request):
    name = request.match_info["exchange"].lower()
    engine = request.app[ENGINE_KEY]
    if name not in engine.exchanges:
        raise web.HTTPNotFound(text=json.dumps({"error": f"Unknown exchange: {name}"}),
                               content_type="application/json")
    return await engine.get_exchange(name)


async def get_exchange_time(request: web.Request) -> web.Response:
    exchange = await _exchange_for(request)
    server_time = await exchange.fetch_time()
    return web.json_response({"exchange": exchange.name, "server_time": server_time})


async def get_order_book(request: web.Request) -> web.Response:
    try:
        limit = int(request.query.get("limit", DEFAULT_BOOK_DEPTH))
    except ValueError:
        return _error(400, "limit must be an integer")
    if limit <= 0:
        return _error(400, "limit must be positive")

    exchange = await _exchange_for(request)
    order_book = await exchange.fetch_order_book(request.match_info["symbol"], limit)
    return web.json_response(order_book.to_dict())


def create_app(engine: ArbitrageEngine, config) -> web.Application:
    """Build the aiohttp application serving the engine state."""
    app = web.Application(middlewares=[
        cors_middleware(config.server.cors_origins),
        error_middleware,
    ])
    app[ENGINE_KEY] = engine

    app.router.add_get("/status", get_status)
    app.router.add_get("/opportunity", get_opportunity)
    app.router.add_post("/engine/start", start_engine)
    app.router.add_post("/engine/stop", stop_engine)
    app.router.add_get("/time", get_server_time)
    app.router.add_get("/exchange/{exchange}/time", get_exchange_time)
    # symbol may be BTCUSDT or BTC/USDT
    app.router.add_get("/exchange/{exchange}/book/{symbol:.+}", get_order_book)
    return app


async def start_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Serve the app in the running loop; caller owns ``runner.cleanup()``."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Status server listening on http://{host}:{port}")
    return runner
