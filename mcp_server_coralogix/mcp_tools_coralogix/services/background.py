"""Background (asynchronous, server-side) query lifecycle.

A job goes ``waiting_for_execution -> running -> terminated`` and, once
terminated, ends in exactly one of success, failed, cancelled or timed out.
Every function here is a single request: the client never polls on its own,
keeps no state about a job, and leaves pacing and deadlines to the caller.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from ..core.client import CoralogixClient
from ..core.diagnostics import get_logger
from ..core.errors import UnexpectedResponseError
from ..core.schemas import (
    BackgroundJobHandle,
    BackgroundQueryData,
    BackgroundQueryRequest,
    CancelAcknowledgement,
    DecodedRecord,
    FailureReason,
    JobFailure,
    JobOutcome,
    JobState,
    JobStatus,
    SubmittedBackgroundQuery,
)
from .classifier import classify_failure, parse_warnings
from .ndjson import decode_ndjson, load_documents, records_from_result

logger = get_logger("background")

SUBMIT_PATH = "/api/v1/dataprime/background-query"
STATUS_PATH = f"{SUBMIT_PATH}/status"
DATA_PATH = f"{SUBMIT_PATH}/data"
CANCEL_PATH = f"{SUBMIT_PATH}/cancel"


def submit_background_query(
    client: CoralogixClient,
    request: BackgroundQueryRequest,
) -> SubmittedBackgroundQuery:
    """Submit a query for background execution.

    Returns the job handle plus any compile-time warnings. Transport errors
    propagate unchanged; there is no retry.
    """
    body = client.request("POST", SUBMIT_PATH, request.to_wire())
    data = _json_object(body, "submit background query")

    job_id = data.get("queryId")
    if not job_id:
        raise UnexpectedResponseError(f"Background query submitted but no queryId returned: {body[:200]!r}")

    submitted = SubmittedBackgroundQuery(
        handle=BackgroundJobHandle(job_id=str(job_id)),
        warnings=parse_warnings(data.get("warnings")),
    )
    logger.info("Submitted background query %s", submitted.handle.job_id)
    return submitted


def poll_background_query_status(client: CoralogixClient, handle: BackgroundJobHandle) -> JobStatus:
    """Fetch one full status snapshot. A pure read with no effect on the job."""
    body = client.request("POST", STATUS_PATH, {"queryId": handle.job_id})
    return status_from_wire(handle.job_id, _json_object(body, "background query status"))


def fetch_background_query_result(
    client: CoralogixClient,
    handle: BackgroundJobHandle,
) -> BackgroundQueryData:
    """Fetch result records.

    While the job has not succeeded the service returns no results object;
    that comes back as ``ready=False``, not as an error.
    """
    body = client.request("POST", DATA_PATH, {"queryId": handle.job_id})

    ready = False
    records: List[DecodedRecord] = []
    for doc in load_documents(body):
        if not isinstance(doc, dict):
            continue
        if "error" in doc:
            logger.warning("Background query %s data line carries an error: %r", handle.job_id, doc["error"])
        response = doc.get("response")
        if not isinstance(response, dict):
            continue
        batch = records_from_result(response.get("results"))
        if batch is not None:
            ready = True
            records.extend(batch)

    if not ready:
        logger.debug("No data yet for background query %s", handle.job_id)
    return BackgroundQueryData(job_id=handle.job_id, ready=ready, records=records)


def cancel_background_query(client: CoralogixClient, handle: BackgroundJobHandle) -> CancelAcknowledgement:
    """Ask the service to stop the job.

    Best-effort: the job may already have terminated, and the cancellation only
    shows up through later status polls.
    """
    client.request("POST", CANCEL_PATH, {"queryId": handle.job_id})
    logger.info("Cancellation requested for background query %s", handle.job_id)
    return CancelAcknowledgement(job_id=handle.job_id)


# ---------------------------------------------------------------------------
# Wire -> JobStatus
# ---------------------------------------------------------------------------

def status_from_wire(job_id: str, raw: Dict[str, Any]) -> JobStatus:
    terminated = raw.get("terminated")
    running = raw.get("running")

    status = JobStatus(
        job_id=job_id,
        state=JobState.WAITING_FOR_EXECUTION,
        submitted_at=raw.get("submittedAt"),
        bytes_scanned=_bytes_scanned(raw.get("metadata")),
        warnings=parse_warnings(raw.get("warnings")),
    )

    if isinstance(terminated, dict):
        status.state = JobState.TERMINATED
        status.running_since = terminated.get("runningSince")
        status.terminated_at = terminated.get("terminatedAt")
        status.outcome, status.failure = _outcome(terminated)
    elif isinstance(running, dict):
        status.state = JobState.RUNNING
        status.running_since = running.get("runningSince")
    elif "waitingForExecution" not in raw:
        logger.warning("Status for %s has no lifecycle state, reading it as waiting: %r", job_id, raw)
    return status


def _outcome(terminated: Dict[str, Any]) -> Tuple[JobOutcome, Optional[JobFailure]]:
    if "success" in terminated:
        return JobOutcome.SUCCESS, None

    error = terminated.get("error")
    if isinstance(error, dict):
        if "failed" in error:
            failed = error["failed"]
            reason = failed.get("reason") if isinstance(failed, dict) else failed
            return JobOutcome.FAILED, classify_failure(reason)
        if "cancelled" in error:
            return JobOutcome.CANCELLED, None
        if "timedOut" in error:
            return JobOutcome.TIMED_OUT, None

    if "cancelled" in terminated:
        return JobOutcome.CANCELLED, None
    if "timedOut" in terminated:
        return JobOutcome.TIMED_OUT, None

    logger.warning("Unrecognized termination outcome: %r", terminated)
    return JobOutcome.FAILED, JobFailure(
        reason=FailureReason.UNKNOWN,
        message=f"unrecognized termination outcome: {json.dumps(terminated, sort_keys=True)}",
    )


def _bytes_scanned(metadata: Any) -> Optional[int]:
    # Counters are cumulative; the largest reported value is the current total
    if not isinstance(metadata, list):
        return None
    values: List[int] = []
    for entry in metadata:
        stats = entry.get("statistics") if isinstance(entry, dict) else None
        if not isinstance(stats, dict):
            continue
        try:
            values.append(int(stats.get("bytesScanned")))
        except (TypeError, ValueError):
            continue
    return max(values) if values else None


def _json_object(body: str, context: str) -> Dict[str, Any]:
    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        data = next((d for d in decode_ndjson(body) if isinstance(d, dict)), None)
    if not isinstance(data, dict):
        raise UnexpectedResponseError(f"Unexpected response to {context}: {body[:200]!r}")
    return data
