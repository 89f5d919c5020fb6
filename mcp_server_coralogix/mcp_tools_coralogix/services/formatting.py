"""Plain-text reports returned by the MCP tools."""

from __future__ import annotations

import json
from typing import List, Sequence

from ..core.schemas import (
    BackgroundQueryData,
    CancelAcknowledgement,
    DecodedRecord,
    JobOutcome,
    JobState,
    JobStatus,
    StreamingQueryResponse,
    SubmittedBackgroundQuery,
)
from .classifier import describe_failure, describe_service_error, describe_warning


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def render_records(records: Sequence[DecodedRecord]) -> str:
    out = [f"Results ({len(records)} records):", ""]
    if not records:
        out.append("No results found.")
        return "\n".join(out) + "\n"

    for i, record in enumerate(records, start=1):
        out.append(f"Record {i}:")
        if record.metadata:
            out.append("  Metadata:")
            out.extend(f"    {kv.key}: {kv.value}" for kv in record.metadata)
        if record.labels:
            out.append("  Labels:")
            out.extend(f"    {kv.key}: {kv.value}" for kv in record.labels)
        if record.payload:
            out.append("  Data:")
            if record.payload_is_json:
                out.append(_indent(json.dumps(record.parsed_payload, indent=4, ensure_ascii=False), "    "))
            else:
                out.append(f"    {record.payload}")
        out.append("")
    return "\n".join(out) + "\n"


def _numbered_warnings(warnings: Sequence[object]) -> List[str]:
    return [f"{i}. {describe_warning(w)}" for i, w in enumerate(warnings, start=1)]


def render_query_response(response: StreamingQueryResponse, query_type: str) -> str:
    title = f"{query_type} Query Results"
    out = [title, "=" * len(title), ""]

    for frame in response.frames:
        if frame.query_id:
            out.extend([f"Query ID: {frame.query_id}", ""])
        if frame.error is not None:
            out.append(f"Error: {describe_service_error(frame.error)}")
            continue
        if frame.warning is not None:
            out.extend([f"Warning: {describe_warning(frame.warning)}", ""])
        if frame.records is not None:
            out.append(render_records(frame.records))
        if frame.unrecognized is not None:
            out.extend([f"Unexpected response line: {json.dumps(frame.unrecognized)}", ""])

    if response.skipped_lines:
        out.append(f"Note: {response.skipped_lines} unreadable response line(s) were skipped.")
    return "\n".join(out).rstrip("\n") + "\n"


def render_submitted(submitted: SubmittedBackgroundQuery) -> str:
    out = [
        "Background query submitted successfully!",
        "",
        f"Query ID: {submitted.handle.job_id}",
        "Use this ID to check status and retrieve results.",
    ]
    if submitted.warnings:
        out.extend(["", "Warnings:"])
        out.extend(_numbered_warnings(submitted.warnings))
    return "\n".join(out) + "\n"


_OUTCOME_TEXT = {
    JobOutcome.SUCCESS: "SUCCESS - Query completed successfully",
    JobOutcome.CANCELLED: "CANCELLED",
    JobOutcome.TIMED_OUT: "TIMED OUT - Use smaller queries or shorter time ranges",
}


def render_status(status: JobStatus) -> str:
    out = ["Background Query Status", f"Query ID: {status.job_id}"]
    if status.submitted_at:
        out.append(f"Submitted: {status.submitted_at}")
    out.append("")

    if status.state is JobState.RUNNING:
        out.append("Status: RUNNING")
        if status.running_since:
            out.append(f"Running since: {status.running_since}")
    elif status.state is JobState.TERMINATED:
        out.append("Status: TERMINATED")
        if status.running_since:
            out.append(f"Running since: {status.running_since}")
        if status.terminated_at:
            out.append(f"Terminated at: {status.terminated_at}")
        if status.outcome is JobOutcome.FAILED:
            out.append(f"Result: FAILED - {describe_failure(status.failure)}")
        elif status.outcome is not None:
            out.append(f"Result: {_OUTCOME_TEXT[status.outcome]}")
    else:
        out.append("Status: WAITING FOR EXECUTION")

    if status.bytes_scanned is not None:
        out.extend(["", "Statistics:", f"Bytes scanned: {status.bytes_scanned}"])

    if status.warnings:
        out.extend(["", "Warnings:"])
        out.extend(_numbered_warnings(status.warnings))
    return "\n".join(out) + "\n"


def render_data(data: BackgroundQueryData) -> str:
    if not data.ready:
        return (
            f"No data available for query ID: {data.job_id}\n"
            "The query may still be running or may have failed."
        )
    return "Background Query Results\n\n" + render_records(data.records)


def render_cancel(ack: CancelAcknowledgement) -> str:
    return (
        f"Cancellation requested for background query {ack.job_id}.\n"
        "Check its status to confirm it ended as CANCELLED; it may already have finished."
    )
