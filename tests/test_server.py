import asyncio
import json

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from mcp_server_coralogix.mcp_tools_coralogix.core.errors import RateLimitError
from mcp_server_coralogix.mcp_tools_coralogix.mcp import server


@pytest.fixture
def use_client(monkeypatch):
    def _use(client):
        monkeypatch.setattr(server, "get_client", lambda: client)
        return client

    return _use


def test_all_query_tools_are_registered():
    names = {tool.name for tool in asyncio.run(server.mcp.list_tools())}
    assert names == {
        "query_dataprime",
        "query_lucene",
        "submit_background_query",
        "get_background_query_status",
        "get_background_query_data",
        "cancel_background_query",
    }


def test_dataprime_report(use_client, scripted):
    body = "\n".join(
        [
            json.dumps({"queryId": {"queryId": "q-1"}}),
            json.dumps({"warning": {"numberOfResultsLimitWarning": {"numberOfResultsLimit": 1}}}),
            "not json",
            json.dumps(
                {
                    "result": {
                        "results": [
                            {
                                "metadata": [{"key": "severity", "value": "Error"}],
                                "labels": [{"key": "applicationname", "value": "api"}],
                                "userData": json.dumps({"msg": "boom"}),
                            }
                        ]
                    }
                }
            ),
        ]
    )
    client = use_client(scripted(body))

    text = server.query_dataprime('source logs | filter severity == "ERROR" | limit 1', limit=1)

    assert text.startswith("DataPrime Query Results\n=======================\n")
    assert "Query ID: q-1" in text
    assert "Warning: Results Limit Warning: Limited to 1 results" in text
    assert "Record 1:" in text
    assert "severity: Error" in text
    assert "applicationname: api" in text
    assert '"msg": "boom"' in text
    assert "1 unreadable response line(s) were skipped" in text
    assert client.calls[0][2]["metadata"]["limit"] == 1


def test_lucene_service_error_line(use_client, scripted):
    use_client(scripted(json.dumps({"error": {"message": "too busy", "code": {"rateLimitReached": {}}}})))
    text = server.query_lucene("severity:ERROR")
    assert "Error: too busy" in text
    assert "Please wait before making more requests" in text


def test_query_transport_error_becomes_tool_error(use_client, scripted):
    use_client(scripted(RateLimitError("Rate limit exceeded (HTTP 429).", 429)))
    with pytest.raises(ToolError, match="DataPrime query failed: Rate limit exceeded"):
        server.query_dataprime("source logs")


def test_half_open_time_range_is_rejected(use_client, scripted):
    use_client(scripted())
    with pytest.raises(ToolError, match="start_date and end_date"):
        server.query_lucene("x", start_date="2025-01-01T00:00:00Z")


def test_invalid_limit_is_reported(use_client, scripted):
    use_client(scripted())
    with pytest.raises(ToolError, match="Lucene query failed"):
        server.query_lucene("x", limit=0)


def test_background_round_trip(use_client, service):
    use_client(service)

    text = server.submit_background_query(
        "source logs | groupby applicationname count()",
        start_date="2025-06-19T21:00:00.000Z",
        end_date="2025-06-19T22:00:00.000Z",
        now_date="2025-06-19T22:00:00Z",
    )
    assert "Background query submitted successfully!" in text
    assert "Query ID: job-1" in text
    assert service.calls[0][2]["nowDate"] == "2025-06-19T22:00:00.000Z"

    status = server.get_background_query_status("job-1")
    assert "Status: WAITING FOR EXECUTION" in status
    assert "No data available for query ID: job-1" in server.get_background_query_data("job-1")

    service.results["job-1"] = [{"userData": "plain"}]
    service.set_state(
        "job-1",
        terminated={"runningSince": "r", "terminatedAt": "t", "success": {}},
    )
    status = server.get_background_query_status("job-1")
    assert "Status: TERMINATED" in status
    assert "Result: SUCCESS" in status

    data = server.get_background_query_data("job-1")
    assert "Record 1:" in data
    assert "plain" in data

    assert "Cancellation requested for background query job-1" in server.cancel_background_query("job-1")


def test_failed_status_shows_remediation(use_client, scripted):
    use_client(
        scripted(
            {
                "submittedAt": "s",
                "terminated": {
                    "runningSince": "r",
                    "terminatedAt": "t",
                    "error": {"failed": {"reason": "Exceeded maximum number of results"}},
                },
                "metadata": [{"statistics": {"bytesScanned": "2048"}}],
                "warnings": [{"archiveWarning": {"bucketAccessDenied": {}}}],
            }
        )
    )

    text = server.get_background_query_status("q")

    assert "Result: FAILED - Exceeded maximum result count: Exceeded maximum number of results" in text
    assert "Suggestion: Narrow the time range" in text
    assert "Bytes scanned: 2048" in text
    assert "1. Archive Warning: Bucket access denied" in text


def test_blank_query_id_is_rejected(use_client, scripted):
    use_client(scripted())
    with pytest.raises(ToolError, match="Failed to get background query status"):
        server.get_background_query_status("   ")


def test_submit_warnings_are_listed(use_client, scripted):
    use_client(scripted({"queryId": "q", "warnings": [{"compileWarning": {"warningMessage": "slow"}}, {"new": {}}]}))
    text = server.submit_background_query("x", start_date="2025-01-01T00:00:00Z", end_date="2025-01-02T00:00:00Z")
    assert "1. Compile Warning: slow" in text
    assert "2. Unknown warning type" in text


def test_main_exits_on_missing_configuration(monkeypatch):
    monkeypatch.delenv("CORALOGIX_API_KEY", raising=False)
    monkeypatch.delenv("CORALOGIX_DOMAIN", raising=False)
    monkeypatch.setattr("sys.argv", ["coralogix-mcp"])
    monkeypatch.setattr(
        "mcp_server_coralogix.mcp_tools_coralogix.core.config.load_dotenv", lambda *a, **k: False
    )
    with pytest.raises(SystemExit) as info:
        server.main()
    assert info.value.code == 1
