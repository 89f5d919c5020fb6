"""MCP server (official python-sdk) exposing mcp_tools_coralogix tools.

This uses FastMCP from the official MCP Python SDK:
- Tools are ordinary Python functions decorated with @mcp.tool().
- Schemas are derived automatically from type hints.
- stdio is the default transport; streamable HTTP is served via Uvicorn.

With stdio, stdout belongs to the JSON-RPC stream. Diagnostics go to stderr
through ``core.diagnostics`` only.
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from typing import Optional

import uvicorn
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import ValidationError

from ..core.client import get_client
from ..core.config import load_settings
from ..core.diagnostics import configure_logging, get_logger
from ..core.errors import ConfigurationError, CoralogixError
from ..core.schemas import (
    BackgroundJobHandle,
    BackgroundQueryRequest,
    QueryRequest,
    Syntax,
    Tier,
    TimeWindow,
)
from ..services.background import (
    cancel_background_query as _cancel,
    fetch_background_query_result,
    poll_background_query_status,
    submit_background_query as _submit,
)
from ..services.formatting import (
    render_cancel,
    render_data,
    render_query_response,
    render_status,
    render_submitted,
)
from ..services.query import run_query


# ---------------------------------------------------------------------------
# MCP-Server & Tools
# ---------------------------------------------------------------------------

mcp = FastMCP(name="coralogix-mcp", stateless_http=False)

logger = get_logger("server")


def _time_window(start_date: Optional[str], end_date: Optional[str]) -> Optional[TimeWindow]:
    if not start_date and not end_date:
        return None
    if not (start_date and end_date):
        raise ToolError("start_date and end_date must be given together")
    return TimeWindow(start=start_date, end=end_date)


def _fail(context: str, exc: Exception) -> ToolError:
    if isinstance(exc, ValidationError):
        detail = "; ".join(e["msg"] for e in exc.errors())
    else:
        detail = str(exc)
    logger.warning("%s: %s", context, detail)
    return ToolError(f"{context}: {detail}")


def _sync_query(query: str, syntax: Syntax, label: str, **kwargs) -> str:
    try:
        request = QueryRequest(text=query, syntax=syntax, **kwargs)
        response = run_query(get_client(), request)
    except (CoralogixError, ValidationError) as exc:
        raise _fail(f"{label} query failed", exc) from exc
    return render_query_response(response, label)


@mcp.tool()
def query_dataprime(
    query: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    tier: Tier = Tier.FREQUENT_SEARCH,
    limit: Optional[int] = None,
    default_source: Optional[str] = None,
) -> str:
    """Run a DataPrime query over logs, traces and spans and return the matching records.

    Example: source logs | filter severity == "ERROR" | limit 5
    Dates are ISO 8601 (e.g. 2025-06-19T21:00:00.000Z); leave both empty for recent data.
    Use TIER_ARCHIVE for older data. limit is 1-10000.
    """
    try:
        window = _time_window(start_date, end_date)
    except ValidationError as exc:
        raise _fail("DataPrime query failed", exc) from exc
    return _sync_query(
        query,
        Syntax.DATAPRIME,
        "DataPrime",
        tier=tier,
        time_window=window,
        result_limit=limit,
        default_source=default_source,
    )


@mcp.tool()
def query_lucene(
    query: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    tier: Tier = Tier.FREQUENT_SEARCH,
    limit: Optional[int] = None,
) -> str:
    """Run a Lucene search over logs, e.g. "severity:ERROR AND applicationName:myapp"."""
    try:
        window = _time_window(start_date, end_date)
    except ValidationError as exc:
        raise _fail("Lucene query failed", exc) from exc
    return _sync_query(query, Syntax.LUCENE, "Lucene", tier=tier, time_window=window, result_limit=limit)


@mcp.tool()
def submit_background_query(
    query: str,
    start_date: str,
    end_date: str,
    syntax: Syntax = Syntax.DATAPRIME,
    now_date: Optional[str] = None,
    tier: Optional[Tier] = None,
    limit: Optional[int] = None,
) -> str:
    """Submit a long-running query for server-side execution and return its query ID.

    For large exports or aggregations over long periods, not for "last 5 logs".
    Follow up with get_background_query_status, then get_background_query_data.
    """
    try:
        request = BackgroundQueryRequest(
            text=query,
            syntax=syntax,
            time_window=_time_window(start_date, end_date),
            now=datetime.fromisoformat(now_date.replace("Z", "+00:00")) if now_date else None,
            tier=tier,
            result_limit=limit,
        )
        submitted = _submit(get_client(), request)
    except (CoralogixError, ValidationError, ValueError) as exc:
        raise _fail("Failed to submit background query", exc) from exc
    return render_submitted(submitted)


def _handle(query_id: str) -> BackgroundJobHandle:
    return BackgroundJobHandle(job_id=query_id.strip())


@mcp.tool()
def get_background_query_status(query_id: str) -> str:
    """Check whether a background query is waiting, running or terminated (and how it ended)."""
    try:
        status = poll_background_query_status(get_client(), _handle(query_id))
    except (CoralogixError, ValidationError) as exc:
        raise _fail("Failed to get background query status", exc) from exc
    return render_status(status)


@mcp.tool()
def get_background_query_data(query_id: str) -> str:
    """Retrieve the records of a background query once its status shows SUCCESS."""
    try:
        data = fetch_background_query_result(get_client(), _handle(query_id))
    except (CoralogixError, ValidationError) as exc:
        raise _fail("Failed to get background query data", exc) from exc
    return render_data(data)


@mcp.tool()
def cancel_background_query(query_id: str) -> str:
    """Request cancellation of a running background query."""
    try:
        ack = _cancel(get_client(), _handle(query_id))
    except (CoralogixError, ValidationError) as exc:
        raise _fail("Failed to cancel background query", exc) from exc
    return render_cancel(ack)


# ---------------------------------------------------------------------------
# ASGI-App für streamable HTTP & Entry-Point
# ---------------------------------------------------------------------------

def main() -> None:
    """Start the Coralogix MCP server (stdio by default)."""
    parser = argparse.ArgumentParser(description="Coralogix query MCP server")
    parser.add_argument("--transport", choices=["stdio", "streamable-http"], default="stdio")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    args = parser.parse_args()

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        logger.error("Set CORALOGIX_API_KEY and CORALOGIX_DOMAIN (e.g. eu2.coralogix.com)")
        sys.exit(1)

    configure_logging(settings.log_level)
    logger.info("Using Coralogix domain: %s", settings.domain)

    if args.transport == "stdio":
        logger.info("Starting Coralogix MCP server (stdio)")
        mcp.run(transport="stdio")
        return

    logger.info(
        "Starting Coralogix MCP server (streamable-http) on http://%s:%d/mcp …",
        args.host,
        args.port,
    )
    # ASGI-App; der MCP-Endpunkt ist /mcp
    uvicorn.run(
        mcp.streamable_http_app(),
        host=args.host,
        port=args.port,
        reload=False,
        loop="asyncio",
        log_config=None,
    )


if __name__ == "__main__":
    main()
