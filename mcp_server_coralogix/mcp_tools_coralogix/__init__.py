"""mcp_tools_coralogix package

Purpose:
- Run DataPrime/Lucene queries against Coralogix and drive background queries
  (submit, poll, fetch, cancel).
- Expose those services via an MCP server (official python-sdk / FastMCP), so an LLM can call tools.

Structure:
- core/: schemas, errors, config, HTTP client, stderr diagnostics
- services/: NDJSON decoding, warning classification, query + background query logic, report text
- mcp/: FastMCP server + tool wiring
"""

from .core.schemas import (  # noqa: F401
    BackgroundJobHandle,
    BackgroundQueryRequest,
    JobOutcome,
    JobState,
    JobStatus,
    QueryRequest,
    Syntax,
    Tier,
    TimeWindow,
)
from .services.background import (  # noqa: F401
    cancel_background_query,
    fetch_background_query_result,
    poll_background_query_status,
    submit_background_query,
)
from .services.classifier import describe_failure, describe_warning  # noqa: F401
from .services.ndjson import decode_streaming_query_response  # noqa: F401
from .services.query import run_query  # noqa: F401
