"""
REST / HTTP API for a TokenLock service.

Built on ``aiohttp``.

Endpoints
---------
GET  /health                       Invariant check + status summary
GET  /balance/{address}            Token balance
POST /approve                      {"account", "spender", "amount"}
POST /transfer                     {"account", "to", "amount"}
GET  /packages                     Staking package catalog
GET  /packages/{name}              One package
GET  /staking                      Pool totals, reserve, pause flag
GET  /staking/{address}            Stakes and balance of one account
GET  /staking/{address}/{index}    One stake
POST /staking/stake                {"account", "amount", "package"}
POST /staking/withdraw             {"account", "index"}
POST /staking/pause                {"account"}            (admin)
POST /staking/unpause              {"account"}            (admin)
POST /staking/rewards              {"account", "amount"}  (reward provider)
GET  /vesting                      Schedule state incl. available amount
POST /vesting/release              {"account"}            (beneficiary)
POST /vesting/revoke               {"account", "refund_to"} (owner)

Amounts are integers in base units (JSON numbers or decimal strings).

Security
--------
- API-key authentication on POST endpoints via ``X-API-Key`` header,
  compared with ``hmac.compare_digest``.
- Per-IP token-bucket rate limiter (configurable RPM).
- CORS middleware with an explicit origin allow-list.
- Request body size cap (``max_body_bytes``).

Usage:
    api = APIServer(service, host="127.0.0.1", port=8080, api_config=cfg.api)
    await api.start()
    ...
    await api.stop()
"""

from __future__ import annotations

import hmac
import json
import logging
import time
from collections import defaultdict
from typing import TYPE_CHECKING, Any

from aiohttp import web

from tokenlock_core.errors import (
    StakeNotFound,
    TokenLockError,
    Unauthorized,
    UnknownPackage,
)

if TYPE_CHECKING:
    from tokenlock_core.config import APIConfig
    from tokenlock_core.service import TokenLockService

logger = logging.getLogger("tokenlock.api")


# ═══════════════════════════════════════════════════════════════════
#  Input helpers
# ═══════════════════════════════════════════════════════════════════

def _safe_int(value: Any, name: str = "value") -> int:
    """Convert *value* to int, rejecting floats, bools and junk."""
    if isinstance(value, bool) or isinstance(value, float):
        raise web.HTTPBadRequest(text=f"{name} must be an integer")
    if isinstance(value, str):
        value = value.strip()
        if not value.lstrip("-").isdigit():
            raise web.HTTPBadRequest(text=f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise web.HTTPBadRequest(text=f"{name} must be an integer")


def _require_str(body: dict, name: str) -> str:
    value = body.get(name, "")
    if not isinstance(value, str) or not value:
        raise web.HTTPBadRequest(text=f"{name} required")
    return value


async def _read_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except ValueError as exc:
        raise web.HTTPBadRequest(text="Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(text="JSON object expected")
    return body


def _reject(exc: TokenLockError, operation: str) -> web.HTTPException:
    """Map an engine error onto the matching HTTP error."""
    logger.warning("%s rejected: %s: %s", operation, exc.code, exc)
    text = f"{exc.code}: {exc}"
    if isinstance(exc, Unauthorized):
        return web.HTTPForbidden(text=text)
    if isinstance(exc, (StakeNotFound, UnknownPackage)):
        return web.HTTPNotFound(text=text)
    return web.HTTPBadRequest(text=text)


# ═══════════════════════════════════════════════════════════════════
#  Rate Limiter (per-IP token bucket)
# ═══════════════════════════════════════════════════════════════════

class _TokenBucket:
    """Simple per-IP token-bucket rate limiter."""

    __slots__ = ("_buckets", "_rpm")

    def __init__(self, rpm: int):
        self._rpm = rpm  # 0 = unlimited
        # ip -> (tokens, last_refill_timestamp)
        self._buckets: dict[str, list[float]] = defaultdict(lambda: [float(rpm), time.monotonic()])

    def allow(self, ip: str) -> bool:
        if self._rpm <= 0:
            return True
        bucket = self._buckets[ip]
        now = time.monotonic()
        elapsed = now - bucket[1]
        bucket[0] = min(float(self._rpm), bucket[0] + elapsed * (self._rpm / 60.0))
        bucket[1] = now
        if bucket[0] >= 1.0:
            bucket[0] -= 1.0
            return True
        return False


# ═══════════════════════════════════════════════════════════════════
#  Middleware factories
# ═══════════════════════════════════════════════════════════════════

def _make_rate_limit_middleware(bucket: _TokenBucket):
    """aiohttp middleware that enforces per-IP rate limits."""

    @web.middleware
    async def rate_limit_middleware(request: web.Request, handler):
        ip = request.remote or "unknown"
        if not bucket.allow(ip):
            raise web.HTTPTooManyRequests(
                text="Rate limit exceeded. Try again later.",
                headers={"Retry-After": "5"},
            )
        return await handler(request)

    return rate_limit_middleware


def _make_api_key_middleware(api_key: str):
    """aiohttp middleware that requires ``X-API-Key`` on POST/PUT/DELETE."""

    @web.middleware
    async def api_key_middleware(request: web.Request, handler):
        if request.method in ("POST", "PUT", "DELETE"):
            key = request.headers.get("X-API-Key", "")
            if not hmac.compare_digest(key, api_key):
                raise web.HTTPUnauthorized(text="Invalid or missing API key")
        return await handler(request)

    return api_key_middleware


def _make_cors_middleware(origins: list[str]):
    """aiohttp middleware that adds CORS headers for listed origins only."""

    allowed = set(origins) if origins else set()
    allowed.discard("*")

    @web.middleware
    async def cors_middleware(request: web.Request, handler):
        origin = request.headers.get("Origin", "")
        if request.method == "OPTIONS":
            resp = web.Response(status=204)
        else:
            resp = await handler(request)

        if origin in allowed:
            resp.headers["Access-Control-Allow-Origin"] = origin
            resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            resp.headers["Access-Control-Allow-Headers"] = "Content-Type, X-API-Key"
            resp.headers["Access-Control-Max-Age"] = "3600"
        return resp

    return cors_middleware


def build_middlewares(cfg: APIConfig | None) -> list:
    middlewares: list = []
    if cfg is None:
        return middlewares
    if cfg.rate_limit_rpm > 0:
        middlewares.append(_make_rate_limit_middleware(_TokenBucket(cfg.rate_limit_rpm)))
    if cfg.cors_origins:
        middlewares.append(_make_cors_middleware(cfg.cors_origins))
    if cfg.api_key:
        middlewares.append(_make_api_key_middleware(cfg.api_key))
    return middlewares


class APIServer:
    """Thin aiohttp wrapper around a ``TokenLockService``."""

    def __init__(
        self,
        service: TokenLockService,
        host: str = "127.0.0.1",
        port: int = 8080,
        *,
        api_config: APIConfig | None = None,
    ):
        self.service = service
        self.host = host
        self.port = port
        self._api_config = api_config
        self._app: web.Application | None = None
        self._runner: web.AppRunner | None = None

    # ── lifecycle ────────────────────────────────────────────────

    def build_app(self) -> web.Application:
        max_body = self._api_config.max_body_bytes if self._api_config else 65_536
        app = web.Application(
            middlewares=build_middlewares(self._api_config),
            client_max_size=max_body,
        )
        self._register_routes(app)
        self._app = app
        return app

    async def start(self) -> None:
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("API listening on http://%s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self._runner:
            await self._runner.cleanup()
            self._runner = None

    # ── routes ───────────────────────────────────────────────────

    def _register_routes(self, app: web.Application) -> None:
        app.router.add_get("/health", self._health)
        app.router.add_get("/balance/{address}", self._balance)
        # Token ledger
        app.router.add_post("/approve", self._submit_approve)
        app.router.add_post("/transfer", self._submit_transfer)
        app.router.add_get("/packages", self._packages)
        app.router.add_get("/packages/{name}", self._package)
        # Staking
        app.router.add_get("/staking", self._staking_pool)
        app.router.add_get("/staking/{address}", self._staking_info)
        app.router.add_get("/staking/{address}/{index}", self._stake)
        app.router.add_post("/staking/stake", self._submit_stake)
        app.router.add_post("/staking/withdraw", self._submit_withdraw)
        app.router.add_post("/staking/pause", self._submit_pause)
        app.router.add_post("/staking/unpause", self._submit_unpause)
        app.router.add_post("/staking/rewards", self._submit_rewards)
        # Vesting
        app.router.add_get("/vesting", self._vesting_info)
        app.router.add_post("/vesting/release", self._submit_release)
        app.router.add_post("/vesting/revoke", self._submit_revoke)

    # ── query handlers ───────────────────────────────────────────

    async def _health(self, _request: web.Request) -> web.Response:
        """Deep health check: accounting invariants plus a status summary."""
        ok, msg = self.service.check_invariants()
        if not ok:
            logger.error("invariant check failed: %s", msg)
        return web.json_response({
            "ok": ok,
            "invariants": msg or "ok",
            "status": self.service.status(),
        }, dumps=_json_dumps, status=200 if ok else 503)

    async def _balance(self, request: web.Request) -> web.Response:
        address = request.match_info["address"]
        return web.json_response({
            "address": address,
            "balance": self.service.ledger.balance_of(address),
            "symbol": self.service.ledger.symbol,
        }, dumps=_json_dumps)

    async def _packages(self, _request: web.Request) -> web.Response:
        return web.json_response(
            self.service.staking.catalog.to_list(), dumps=_json_dumps
        )

    async def _package(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        try:
            package = self.service.staking.packages(name)
        except UnknownPackage as exc:
            raise _reject(exc, "package lookup") from exc
        return web.json_response(package.to_dict(), dumps=_json_dumps)

    async def _staking_pool(self, _request: web.Request) -> web.Response:
        return web.json_response(
            self.service.staking.get_pool_summary(), dumps=_json_dumps
        )

    async def _staking_info(self, request: web.Request) -> web.Response:
        address = request.match_info["address"]
        return web.json_response(
            self.service.staking.get_staking_summary(address), dumps=_json_dumps
        )

    async def _stake(self, request: web.Request) -> web.Response:
        address = request.match_info["address"]
        index = _safe_int(request.match_info["index"], "index")
        staking = self.service.staking
        try:
            record = staking.stakes(address, index)
        except StakeNotFound as exc:
            raise _reject(exc, "stake lookup") from exc
        package = staking.packages(record.package_name)
        return web.json_response(
            record.to_dict(package, staking.clock.now()), dumps=_json_dumps
        )

    async def _vesting_info(self, _request: web.Request) -> web.Response:
        vesting = self._require_vesting()
        return web.json_response(vesting.to_dict(), dumps=_json_dumps)

    # ── ledger handlers ──────────────────────────────────────────

    async def _submit_approve(self, request: web.Request) -> web.Response:
        """
        POST /approve
        Body: {"account": "alice", "spender": "staking-pool", "amount": "..."}

        Sets how much ``spender`` may pull from ``account``.  Staking and
        reward funding pull through this allowance.
        """
        body = await _read_body(request)
        account = _require_str(body, "account")
        spender = _require_str(body, "spender")
        amount = _safe_int(body.get("amount"), "amount")
        ledger = self.service.ledger
        try:
            ledger.approve(account, spender, amount)
        except TokenLockError as exc:
            raise _reject(exc, "approve") from exc
        return web.json_response({
            "status": "approved",
            "account": account,
            "spender": spender,
            "allowance": ledger.allowance(account, spender),
        }, dumps=_json_dumps)

    async def _submit_transfer(self, request: web.Request) -> web.Response:
        """
        POST /transfer
        Body: {"account": "treasury", "to": "vesting-vault", "amount": "..."}

        Plain token transfer, e.g. a top-up of the vesting vault.
        """
        body = await _read_body(request)
        account = _require_str(body, "account")
        to = _require_str(body, "to")
        amount = _safe_int(body.get("amount"), "amount")
        ledger = self.service.ledger
        try:
            ledger.transfer(account, to, amount)
        except TokenLockError as exc:
            raise _reject(exc, "transfer") from exc
        return web.json_response({
            "status": "transferred",
            "account": account,
            "to": to,
            "amount": amount,
            "balance": ledger.balance_of(account),
        }, dumps=_json_dumps)

    # ── staking handlers ─────────────────────────────────────────

    async def _submit_stake(self, request: web.Request) -> web.Response:
        """
        POST /staking/stake
        Body: {"account": "alice", "amount": "10000000000000000000", "package": "silver"}

        The account must have approved the staking address beforehand.
        """
        body = await _read_body(request)
        account = _require_str(body, "account")
        amount = _safe_int(body.get("amount", 0), "amount")
        package = _require_str(body, "package")
        try:
            record = self.service.staking.stake_tokens(account, amount, package)
        except TokenLockError as exc:
            raise _reject(exc, "stake") from exc
        return web.json_response({
            "status": "staked",
            "account": account,
            "index": record.index,
            "amount": record.amount,
            "package": record.package_name,
            "timestamp": record.timestamp,
        }, dumps=_json_dumps)

    async def _submit_withdraw(self, request: web.Request) -> web.Response:
        """POST /staking/withdraw  Body: {"account": "alice", "index": 0}"""
        body = await _read_body(request)
        account = _require_str(body, "account")
        index = _safe_int(body.get("index"), "index")
        try:
            principal, interest = self.service.staking.withdraw_stake(account, index)
        except TokenLockError as exc:
            raise _reject(exc, "withdraw") from exc
        return web.json_response({
            "status": "withdrawn",
            "account": account,
            "index": index,
            "principal": principal,
            "interest": interest,
            "payout": principal + interest,
        }, dumps=_json_dumps)

    async def _submit_pause(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        account = _require_str(body, "account")
        try:
            self.service.staking.pause_staking(account)
        except TokenLockError as exc:
            raise _reject(exc, "pause") from exc
        return web.json_response({"paused": True})

    async def _submit_unpause(self, request: web.Request) -> web.Response:
        body = await _read_body(request)
        account = _require_str(body, "account")
        try:
            self.service.staking.unpause_staking(account)
        except TokenLockError as exc:
            raise _reject(exc, "unpause") from exc
        return web.json_response({"paused": False})

    async def _submit_rewards(self, request: web.Request) -> web.Response:
        """POST /staking/rewards  Body: {"account": "treasury", "amount": "..."}"""
        body = await _read_body(request)
        account = _require_str(body, "account")
        amount = _safe_int(body.get("amount", 0), "amount")
        try:
            reserve = self.service.staking.fund_rewards(account, amount)
        except TokenLockError as exc:
            raise _reject(exc, "fund rewards") from exc
        return web.json_response(
            {"status": "funded", "amount": amount, "reward_reserve": reserve},
            dumps=_json_dumps,
        )

    # ── vesting handlers ─────────────────────────────────────────

    async def _submit_release(self, request: web.Request) -> web.Response:
        vesting = self._require_vesting()
        body = await _read_body(request)
        account = _require_str(body, "account")
        try:
            amount = vesting.release(account)
        except TokenLockError as exc:
            raise _reject(exc, "release") from exc
        return web.json_response({
            "status": "released",
            "beneficiary": vesting.beneficiary,
            "amount": amount,
            "released": vesting.released,
        }, dumps=_json_dumps)

    async def _submit_revoke(self, request: web.Request) -> web.Response:
        vesting = self._require_vesting()
        body = await _read_body(request)
        account = _require_str(body, "account")
        refund_to = _require_str(body, "refund_to")
        try:
            refunded = vesting.revoke(account, refund_to)
        except TokenLockError as exc:
            raise _reject(exc, "revoke") from exc
        return web.json_response({
            "status": "revoked",
            "refund_to": refund_to,
            "refunded": refunded,
            "still_available": vesting.get_available_tokens(),
        }, dumps=_json_dumps)

    def _require_vesting(self):
        if self.service.vesting is None:
            raise web.HTTPNotFound(text="Vesting not enabled")
        return self.service.vesting


def _json_dumps(obj: Any) -> str:
    """JSON serialiser that handles non-standard types."""
    return json.dumps(obj, default=str)
