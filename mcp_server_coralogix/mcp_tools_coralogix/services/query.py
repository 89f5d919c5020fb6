from __future__ import annotations

from ..core.client import CoralogixClient
from ..core.diagnostics import get_logger
from ..core.schemas import QueryRequest, StreamingQueryResponse
from .ndjson import decode_streaming_query_response

logger = get_logger("query")

QUERY_PATH = "/api/v1/dataprime/query"


def run_query(client: CoralogixClient, request: QueryRequest) -> StreamingQueryResponse:
    """Run a synchronous DataPrime/Lucene query and decode the NDJSON answer.

    Warnings and service errors inside the body are returned in the frames,
    not raised. Only transport failures raise.
    """
    body = client.request("POST", QUERY_PATH, request.to_wire())
    response = decode_streaming_query_response(body)
    if response.skipped_lines:
        logger.info("Query response had %d unreadable line(s)", response.skipped_lines)
    return response
