"""HTTP transport: a thin aiohttp application around the resolver."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from aiohttp import web

from .config import AppSettings
from .exceptions import InvalidIPError
from .resolver import Resolver
from .serialize import dumps

logger = logging.getLogger(__name__)

RESOLVER_KEY = web.AppKey("resolver", Resolver)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Credentials": "true",
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def client_ip(request: web.Request) -> str:
    """Caller address: X-Real-IP, then the first X-Forwarded-For hop, then the peer."""
    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        logger.debug(f"Client IP from X-Real-IP: {real_ip}")
        return real_ip

    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            logger.debug(f"Client IP from X-Forwarded-For: {first}")
            return first

    remote = request.remote or ""
    logger.debug(f"Client IP from peer address: {remote}")
    return remote


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=200, headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


def _json(data: dict, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=dumps)


def _lookup(request: web.Request, ip: str) -> web.Response:
    resolver = request.app[RESOLVER_KEY]
    try:
        result = resolver.resolve(ip)
    except InvalidIPError as e:
        logger.warning(str(e))
        return _json({"error": "invalid IP address", "ip": ip}, status=400)
    except Exception:
        logger.exception(f"Lookup of {ip!r} failed")
        return _json({"error": "internal server error"}, status=500)
    return _json(result.to_dict())


async def handle_current_ip(request: web.Request) -> web.Response:
    return _lookup(request, client_ip(request))


async def handle_query_ip(request: web.Request) -> web.Response:
    return _lookup(request, request.match_info["ip"])


def create_app(resolver: Resolver) -> web.Application:
    """Build the application; the caller owns the resolver's sources."""
    app = web.Application(middlewares=[cors_middleware])
    app[RESOLVER_KEY] = resolver
    app.router.add_get("/", handle_current_ip)
    app.router.add_get("/ip", handle_current_ip)
    app.router.add_get("/ip/{ip}", handle_query_ip)
    return app


def run_server(resolver: Resolver, settings: AppSettings | None = None) -> None:
    """Serve until interrupted."""
    settings = settings or AppSettings()
    logger.info(f"Server starting on {settings.HOST}:{settings.PORT}")
    web.run_app(create_app(resolver), host=settings.HOST, port=settings.PORT, print=None)
