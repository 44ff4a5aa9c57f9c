"""Discord Member Stats Gateway — FastAPI application entry point.

An edge endpoint that reports total and online member counts for a
Discord guild, keeping the bot token server-side and shielding it from
abuse with a per-IP sliding window rate limit.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from src.config.settings import get_settings
from src.discord.client import DiscordAPIError, close_discord_client, get_discord_client, is_snowflake
from src.logging.audit import (
    RequestTimer,
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from src.security.identity import get_client_ip
from src.security.ratelimit import RateLimitResult, check_rate_limit, now_ms
from src.store.factory import close_window_store

VERSION = "1.0.0"

ALL_METHODS = ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("Gateway started")
    yield
    await close_discord_client()
    await close_window_store()
    get_audit_logger().info("Gateway stopped")


app = FastAPI(
    title="Discord Member Stats Gateway",
    description="Rate-limited proxy for Discord guild member counts",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.api_route("/", methods=ALL_METHODS)
@app.api_route("/api/members", methods=ALL_METHODS)
async def member_stats(request: Request):
    """Return {totalMembers, onlineMembers} for ?guildId=...

    Pipeline: CORS preflight -> Method check -> Rate Limit -> Validate -> Fetch -> Log
    """
    logger = get_audit_logger()
    rid = generate_request_id()
    request_id_var.set(rid)

    try:
        settings = get_settings()
    except ValidationError:
        logger.exception("Invalid gateway configuration")
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch member counts"},
            headers=_cors_headers("*"),
        )
    cors = _cors_headers(settings.cors_origin)

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=cors)

    if request.method != "GET":
        return JSONResponse(status_code=405, content={"error": "Method not allowed"}, headers=cors)

    client_ip = get_client_ip(request.headers)

    try:
        # 1. Rate limiting (per client IP)
        rate_result = await check_rate_limit(
            client_ip, settings.rate_limit_max, settings.rate_limit_window_ms
        )
        headers = {**cors, **_rate_limit_headers(rate_result), "X-Request-Id": rid}

        if not rate_result.success:
            retry_after = rate_result.retry_after_seconds(now_ms())
            logger.warning(
                "Rate limit exceeded",
                extra={"audit_data": {
                    "client_ip": client_ip,
                    "rate_limit": rate_result.limit,
                    "retry_after": retry_after,
                }},
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Rate limit exceeded. Please try again later.",
                    "retryAfter": retry_after,
                },
                headers={**headers, "Retry-After": str(retry_after)},
            )

        # 2. Request validation
        guild_id = request.query_params.get("guildId")
        if not guild_id:
            return JSONResponse(status_code=400, content={"error": "Guild ID is required"}, headers=headers)
        # Guild IDs are numeric snowflakes
        if not is_snowflake(guild_id):
            return JSONResponse(status_code=400, content={"error": "Invalid guild ID"}, headers=headers)

        if not settings.discord_bot_token:
            logger.error("Discord bot token is not configured")
            return JSONResponse(
                status_code=500,
                content={"error": "Missing bot token configuration"},
                headers=headers,
            )

        # 3. Upstream fetch
        try:
            with RequestTimer() as timer:
                stats = await get_discord_client().get_member_stats(guild_id, settings.discord_bot_token)
        except DiscordAPIError as e:
            if e.status_code in (403, 404):
                logger.warning(
                    "Discord rejected guild lookup",
                    extra={"audit_data": {
                        "client_ip": client_ip,
                        "guild_id": guild_id,
                        "upstream_status": e.status_code,
                    }},
                )
                return JSONResponse(status_code=e.status_code, content={"error": e.message}, headers=headers)
            raise

        # 4. Audit log
        logger.info(
            "Member stats served",
            extra={"audit_data": {
                "client_ip": client_ip,
                "guild_id": guild_id,
                "latency_ms": timer.elapsed_ms,
                "rate_limit_remaining": rate_result.remaining,
            }},
        )
        return JSONResponse(status_code=200, content=stats.to_dict(), headers=headers)

    except Exception:
        logger.exception("Discord API error", extra={"audit_data": {"client_ip": client_ip}})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch member counts"},
            headers=cors,
        )


def _cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": "GET, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def _rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": _iso_timestamp(result.reset),
    }


def _iso_timestamp(epoch_ms: int) -> str:
    """Epoch milliseconds -> ISO-8601 UTC with millisecond precision and a Z suffix."""
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
