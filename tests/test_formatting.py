from mcp_server_coralogix.mcp_tools_coralogix.core.schemas import (
    BackgroundQueryData,
    DecodedRecord,
    JobOutcome,
    JobState,
    JobStatus,
)
from mcp_server_coralogix.mcp_tools_coralogix.services.formatting import (
    render_data,
    render_records,
    render_status,
)


def test_empty_result_set():
    assert render_records([]) == "Results (0 records):\n\nNo results found.\n"


def test_records_are_numbered_from_one():
    text = render_records([DecodedRecord(payload="a"), DecodedRecord(payload="b")])
    assert text.index("Record 1:") < text.index("Record 2:")
    assert "    a" in text


def test_running_status():
    text = render_status(JobStatus(job_id="q", state=JobState.RUNNING, running_since="since"))
    assert "Status: RUNNING" in text
    assert "Running since: since" in text
    assert "Statistics" not in text


def test_timed_out_status_suggests_smaller_queries():
    text = render_status(JobStatus(job_id="q", state=JobState.TERMINATED, outcome=JobOutcome.TIMED_OUT))
    assert "Result: TIMED OUT" in text
    assert "smaller queries" in text


def test_ready_but_empty_data():
    text = render_data(BackgroundQueryData(job_id="q", ready=True))
    assert "No results found." in text
