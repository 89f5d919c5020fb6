from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Syntax(str, Enum):
    DATAPRIME = "QUERY_SYNTAX_DATAPRIME"
    LUCENE = "QUERY_SYNTAX_LUCENE"


class Tier(str, Enum):
    """Frequent search reads recently indexed data; archive reads cold storage."""
    FREQUENT_SEARCH = "TIER_FREQUENT_SEARCH"
    ARCHIVE = "TIER_ARCHIVE"


def iso_utc(value: datetime) -> str:
    """Render a datetime the way the query API expects (UTC, millis, ``Z``)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TimeWindow(BaseModel):
    """Inclusive query time range. Naive datetimes are read as UTC."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        start = self.start if self.start.tzinfo else self.start.replace(tzinfo=timezone.utc)
        end = self.end if self.end.tzinfo else self.end.replace(tzinfo=timezone.utc)
        if end < start:
            raise ValueError("end_date must be >= start_date")
        return self


class QueryRequest(BaseModel):
    """One synchronous DataPrime/Lucene query."""
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1, description="DataPrime or Lucene query string")
    syntax: Syntax = Syntax.DATAPRIME
    tier: Tier = Tier.FREQUENT_SEARCH
    time_window: Optional[TimeWindow] = None
    result_limit: Optional[int] = Field(default=None, ge=1, le=10000)
    default_source: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"syntax": self.syntax.value, "tier": self.tier.value}
        if self.result_limit is not None:
            metadata["limit"] = self.result_limit
        if self.time_window is not None:
            metadata["startDate"] = iso_utc(self.time_window.start)
            metadata["endDate"] = iso_utc(self.time_window.end)
        if self.default_source:
            metadata["defaultSource"] = self.default_source
        return {"query": self.text, "metadata": metadata}


class BackgroundQueryRequest(BaseModel):
    """A query submitted for server-side asynchronous execution.

    The submit endpoint has been called with and without ``tier``/``limit``;
    both are optional here and only sent when set.
    """
    model_config = ConfigDict(frozen=True)

    text: str = Field(..., min_length=1)
    syntax: Syntax = Syntax.DATAPRIME
    time_window: Optional[TimeWindow] = None
    now: Optional[datetime] = None
    tier: Optional[Tier] = None
    result_limit: Optional[int] = Field(default=None, ge=1, le=1_000_000)

    def to_wire(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"query": self.text, "syntax": self.syntax.value}
        if self.time_window is not None:
            body["startDate"] = iso_utc(self.time_window.start)
            body["endDate"] = iso_utc(self.time_window.end)
        if self.now is not None:
            body["nowDate"] = iso_utc(self.now)
        if self.tier is not None:
            body["tier"] = self.tier.value
        if self.result_limit is not None:
            body["limit"] = self.result_limit
        return body


# ---------------------------------------------------------------------------
# Warnings (closed union, discriminated on ``kind``)
# ---------------------------------------------------------------------------

class _Variant(BaseModel):
    model_config = ConfigDict(frozen=True)


class CompileWarning(_Variant):
    kind: Literal["compile"] = "compile"
    message: str = ""


class TimeRangeWarning(_Variant):
    kind: Literal["time_range"] = "time_range"
    message: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ResultsLimitWarning(_Variant):
    kind: Literal["results_limit"] = "results_limit"
    limit: int


class BytesScannedLimitWarning(_Variant):
    kind: Literal["bytes_scanned_limit"] = "bytes_scanned_limit"


class DeprecatedFeatureWarning(_Variant):
    kind: Literal["deprecation"] = "deprecation"
    message: str = ""


class BlocksLimitWarning(_Variant):
    kind: Literal["blocks_limit"] = "blocks_limit"


class AggregationBucketsLimitWarning(_Variant):
    kind: Literal["aggregation_buckets_limit"] = "aggregation_buckets_limit"
    limit: int


class ArchiveWarningKind(str, Enum):
    NO_METASTORE_DATA = "no_metastore_data"
    BUCKET_ACCESS_DENIED = "bucket_access_denied"
    BUCKET_READ_FAILED = "bucket_read_failed"
    MISSING_DATA = "missing_data"


class ArchiveWarning(_Variant):
    kind: Literal["archive"] = "archive"
    reason: ArchiveWarningKind


class ScrollTimeoutWarning(_Variant):
    kind: Literal["scroll_timeout"] = "scroll_timeout"


class FieldCountLimitWarning(_Variant):
    kind: Literal["field_count_limit"] = "field_count_limit"


class ShuffleFileSizeLimitWarning(_Variant):
    kind: Literal["shuffle_file_size_limit"] = "shuffle_file_size_limit"


class FilesReadLimitWarning(_Variant):
    kind: Literal["files_read_limit"] = "files_read_limit"


class SidebarCardinalityLimitWarning(_Variant):
    kind: Literal["sidebar_cardinality_limit"] = "sidebar_cardinality_limit"
    fields: List[str] = Field(default_factory=list)
    cardinality_limit: str = ""


class UnknownWarning(_Variant):
    """A warning shape this client does not know; ``raw`` is kept as received."""
    kind: Literal["unknown"] = "unknown"
    raw: Any = None


QueryWarning = Annotated[
    Union[
        CompileWarning,
        TimeRangeWarning,
        ResultsLimitWarning,
        BytesScannedLimitWarning,
        DeprecatedFeatureWarning,
        BlocksLimitWarning,
        AggregationBucketsLimitWarning,
        ArchiveWarning,
        ScrollTimeoutWarning,
        FieldCountLimitWarning,
        ShuffleFileSizeLimitWarning,
        FilesReadLimitWarning,
        SidebarCardinalityLimitWarning,
        UnknownWarning,
    ],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Service-reported errors
# ---------------------------------------------------------------------------

class RateLimitReached(_Variant):
    kind: Literal["rate_limit_reached"] = "rate_limit_reached"
    message: str = ""


class GenericServiceError(_Variant):
    kind: Literal["generic"] = "generic"
    message: str = ""


ServiceError = Annotated[Union[RateLimitReached, GenericServiceError], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Decoded query output
# ---------------------------------------------------------------------------

class KeyValue(BaseModel):
    key: str
    value: str


class DecodedRecord(BaseModel):
    """One result row. ``parsed_payload`` is only meaningful if ``payload_is_json``."""
    metadata: List[KeyValue] = Field(default_factory=list)
    labels: List[KeyValue] = Field(default_factory=list)
    payload: str = ""
    parsed_payload: Any = None
    payload_is_json: bool = False


class QueryFrame(BaseModel):
    """One decoded NDJSON line of a query response."""
    query_id: Optional[str] = None
    error: Optional[ServiceError] = None
    warning: Optional[QueryWarning] = None
    records: Optional[List[DecodedRecord]] = None
    # Set when the line had none of the known keys
    unrecognized: Optional[Any] = None


class StreamingQueryResponse(BaseModel):
    frames: List[QueryFrame] = Field(default_factory=list)
    skipped_lines: int = 0

    @property
    def records(self) -> List[DecodedRecord]:
        return [r for f in self.frames for r in (f.records or [])]

    @property
    def warnings(self) -> List[Any]:
        return [f.warning for f in self.frames if f.warning is not None]

    @property
    def errors(self) -> List[Any]:
        return [f.error for f in self.frames if f.error is not None]


# ---------------------------------------------------------------------------
# Background query lifecycle
# ---------------------------------------------------------------------------

class BackgroundJobHandle(BaseModel):
    """Opaque job identifier returned by submission."""
    model_config = ConfigDict(frozen=True)

    job_id: str = Field(..., min_length=1)


class SubmittedBackgroundQuery(BaseModel):
    handle: BackgroundJobHandle
    warnings: List[QueryWarning] = Field(default_factory=list)


class JobState(str, Enum):
    WAITING_FOR_EXECUTION = "waiting_for_execution"
    RUNNING = "running"
    TERMINATED = "terminated"


class JobOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


class FailureReason(str, Enum):
    RESULTS_LIMIT = "results_limit"
    BYTES_SCANNED_LIMIT = "bytes_scanned_limit"
    MISSING_ARCHIVE_METADATA = "missing_archive_metadata"
    STORAGE_ACCESS = "storage_access"
    SCROLL_TIMEOUT = "scroll_timeout"
    UNKNOWN = "unknown"


class JobFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    reason: FailureReason
    # Verbatim reason text from the service
    message: str = ""


class JobStatus(BaseModel):
    """Full snapshot of a background job as reported by one status call."""
    job_id: str
    state: JobState
    outcome: Optional[JobOutcome] = None
    failure: Optional[JobFailure] = None
    submitted_at: Optional[str] = None
    running_since: Optional[str] = None
    terminated_at: Optional[str] = None
    bytes_scanned: Optional[int] = None
    warnings: List[QueryWarning] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state is JobState.TERMINATED


class BackgroundQueryData(BaseModel):
    """Result of a data fetch. ``ready`` is False while there is nothing to return yet."""
    job_id: str
    ready: bool = False
    records: List[DecodedRecord] = Field(default_factory=list)


class CancelAcknowledgement(BaseModel):
    job_id: str
