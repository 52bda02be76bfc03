"""MCP server implementation using fastmcp"""

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import McpError
from mcp.types import ErrorData
from pydantic import BaseModel
from starlette.responses import JSONResponse

from advice_widget.config import config
from advice_widget.services.telemetry import get_telemetry_service
from advice_widget.services.timeline_host import TimelineHost
from advice_widget.services.timeline_scheduler import TimelineScheduler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize fastmcp server
mcp = FastMCP(name="advice-slip-widget", version="1.0.0")

# Scheduler is created on first use so tests can patch config first
_timeline_scheduler: TimelineScheduler | None = None

# Background host re-invoking the scheduler at each next_refresh_at
_timeline_host: TimelineHost | None = None

_init_lock = threading.Lock()


def _get_timeline_scheduler() -> TimelineScheduler:
    """Get or initialize the shared timeline scheduler"""
    global _timeline_scheduler

    with _init_lock:
        if _timeline_scheduler is None:
            _timeline_scheduler = TimelineScheduler()

    return _timeline_scheduler


def _call_tool(tool_name: str, operation: Callable[[], BaseModel]) -> dict[str, Any]:
    """Run a tool operation, logging telemetry regardless of success/failure"""
    telemetry = get_telemetry_service()
    error: Exception | None = None
    response = None

    try:
        try:
            response = operation().model_dump(mode="json")
        except Exception as e:
            error = e
            raise McpError(ErrorData(code=-32603, message=f"{tool_name} failed: {e}")) from e
        return response
    finally:
        telemetry.log_tool_call(tool_name=tool_name, response=response, error=error)


def snapshot_entry() -> dict[str, Any]:
    return _call_tool("get_snapshot", lambda: _get_timeline_scheduler().snapshot())


def timeline_decision() -> dict[str, Any]:
    return _call_tool("get_timeline", lambda: _get_timeline_scheduler().schedule())


def request_refresh() -> dict[str, Any]:
    def _refresh():
        if _timeline_host is not None:
            return _timeline_host.refresh()
        return _get_timeline_scheduler().invalidate()

    return _call_tool("refresh_advice", _refresh)


@mcp.tool()
async def get_snapshot() -> dict[str, Any]:
    """Return a quick preview entry without touching the network

    Returns:
        dict: Entry with timestamp and fixed advice text
    """
    return snapshot_entry()


@mcp.tool()
async def get_timeline() -> dict[str, Any]:
    """Return the current advice timeline and when to ask again

    Fetches new advice only when nothing is cached. Never fails because of
    the advice API; a placeholder is returned instead.

    Returns:
        dict: entries, next_refresh_at and cache_hit
    """
    # The fetch blocks, keep it off the event loop
    return await asyncio.to_thread(timeline_decision)


@mcp.tool()
async def refresh_advice() -> dict[str, Any]:
    """Clear the cached advice so the next timeline fetches a new slip

    Returns:
        dict: Acknowledgment with the request time
    """
    return request_refresh()


@mcp.custom_route("/", methods=["GET"])
@mcp.custom_route("/health", methods=["GET"])
def health_check(request):
    return JSONResponse({"status": "ok"})


def _startup_sync() -> None:
    """Start the background timeline host"""
    global _timeline_host

    if not config.host_refresh_enabled:
        logger.info("Background timeline host is disabled")
        return

    try:
        logger.info("Initializing background timeline host")
        _timeline_host = TimelineHost(_get_timeline_scheduler())
        _timeline_host.start()
        logger.info("Background timeline host started successfully")
    except Exception as e:
        logger.error(f"Failed to start background timeline host: {e}")
        _timeline_host = None
        # Tools still work without the host


def _shutdown_sync() -> None:
    """Gracefully shutdown on server shutdown, closing the advice HTTP client"""
    global _timeline_host

    if _timeline_host:
        try:
            logger.info("Shutting down background timeline host")
            _timeline_host.stop()
        except Exception as e:
            logger.error(f"Error shutting down timeline host: {e}")
        _timeline_host = None

    if _timeline_scheduler is not None:
        try:
            _timeline_scheduler.fetcher.close()
        except Exception as e:
            logger.error(f"Error closing advice fetcher: {e}")


def main() -> None:
    """Entry point for the MCP server"""
    _startup_sync()

    try:
        mcp.run(transport="streamable-http", host=config.mcp_host, port=config.mcp_port)
    finally:
        _shutdown_sync()


if __name__ == "__main__":
    main()
