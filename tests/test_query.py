import json
from datetime import datetime

import pytest
from pydantic import ValidationError

from mcp_server_coralogix.mcp_tools_coralogix.core.errors import BadRequestError
from mcp_server_coralogix.mcp_tools_coralogix.core.schemas import (
    QueryRequest,
    ResultsLimitWarning,
    Syntax,
    Tier,
    TimeWindow,
)
from mcp_server_coralogix.mcp_tools_coralogix.services.query import QUERY_PATH, run_query


def test_request_wire_format():
    request = QueryRequest(
        text='source logs | filter severity == "ERROR"',
        tier=Tier.ARCHIVE,
        time_window=TimeWindow(start="2025-06-19T21:00:00Z", end="2025-06-20T00:30:00+02:00"),
        result_limit=5,
        default_source="logs",
    )
    assert request.to_wire() == {
        "query": 'source logs | filter severity == "ERROR"',
        "metadata": {
            "syntax": "QUERY_SYNTAX_DATAPRIME",
            "tier": "TIER_ARCHIVE",
            "limit": 5,
            "startDate": "2025-06-19T21:00:00.000Z",
            "endDate": "2025-06-19T22:30:00.000Z",
            "defaultSource": "logs",
        },
    }


def test_naive_datetimes_are_utc():
    request = QueryRequest(
        text="severity:ERROR",
        syntax=Syntax.LUCENE,
        time_window=TimeWindow(start=datetime(2025, 1, 1), end=datetime(2025, 1, 2)),
    )
    meta = request.to_wire()["metadata"]
    assert meta["startDate"] == "2025-01-01T00:00:00.000Z"
    assert meta["syntax"] == "QUERY_SYNTAX_LUCENE"
    assert "limit" not in meta


@pytest.mark.parametrize(
    "kwargs",
    [
        {"text": ""},
        {"text": "x", "result_limit": 0},
        {"text": "x", "result_limit": 10001},
    ],
)
def test_invalid_requests_are_rejected(kwargs):
    with pytest.raises(ValidationError):
        QueryRequest(**kwargs)


def test_reversed_time_window_is_rejected():
    with pytest.raises(ValidationError):
        TimeWindow(start="2025-01-02T00:00:00Z", end="2025-01-01T00:00:00Z")


def test_request_is_immutable():
    request = QueryRequest(text="x")
    with pytest.raises(ValidationError):
        request.text = "y"


def test_run_query_decodes_frames(scripted):
    body = "\n".join(
        [
            json.dumps({"queryId": {"queryId": "q-9"}}),
            json.dumps({"warning": {"numberOfResultsLimitWarning": {"numberOfResultsLimit": 2}}}),
            "{truncated",
            json.dumps({"result": {"results": [{"userData": "{}"}, {"userData": "[]"}]}}),
        ]
    )
    client = scripted(body)

    response = run_query(client, QueryRequest(text="source logs | limit 2"))

    assert client.calls[0][:2] == ("POST", QUERY_PATH)
    assert response.frames[0].query_id == "q-9"
    assert response.warnings == [ResultsLimitWarning(limit=2)]
    assert len(response.records) == 2
    assert response.skipped_lines == 1


def test_run_query_propagates_transport_errors(scripted):
    with pytest.raises(BadRequestError):
        run_query(scripted(BadRequestError("Bad request (HTTP 400): bad", 400)), QueryRequest(text="x"))
