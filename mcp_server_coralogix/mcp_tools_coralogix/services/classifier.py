"""Warning and error taxonomy for query responses.

The query API reports warnings as objects with exactly one populated key
(``{"compileWarning": {...}}``, ``{"archiveWarning": {"bucketReadFailed": {}}}``,
...). This module turns those shapes into the variants of
:data:`~..core.schemas.QueryWarning` and renders them as text. Synchronous
queries and background jobs both go through here, so the same warning reads the
same everywhere.

Nothing in this module raises on service data: unknown shapes become
:class:`UnknownWarning` / ``FailureReason.UNKNOWN`` and are described by a
single fallback.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Tuple, Type, Union, get_args

from pydantic import BaseModel, ValidationError

from ..core.diagnostics import get_logger
from ..core.schemas import (
    AggregationBucketsLimitWarning,
    ArchiveWarning,
    ArchiveWarningKind,
    BlocksLimitWarning,
    BytesScannedLimitWarning,
    CompileWarning,
    DeprecatedFeatureWarning,
    FailureReason,
    FieldCountLimitWarning,
    FilesReadLimitWarning,
    GenericServiceError,
    JobFailure,
    QueryWarning,
    RateLimitReached,
    ResultsLimitWarning,
    ScrollTimeoutWarning,
    ServiceError,
    ShuffleFileSizeLimitWarning,
    SidebarCardinalityLimitWarning,
    TimeRangeWarning,
    UnknownWarning,
)

logger = get_logger("classifier")

UNKNOWN_WARNING_TEXT = "Unknown warning type"
UNKNOWN_ERROR_TEXT = "Unknown error type"


# ---------------------------------------------------------------------------
# Wire shape -> variant
# ---------------------------------------------------------------------------

_ARCHIVE_KEYS: Dict[str, ArchiveWarningKind] = {
    "noMetastoreData": ArchiveWarningKind.NO_METASTORE_DATA,
    "bucketAccessDenied": ArchiveWarningKind.BUCKET_ACCESS_DENIED,
    "bucketReadFailed": ArchiveWarningKind.BUCKET_READ_FAILED,
    "missingData": ArchiveWarningKind.MISSING_DATA,
}


def _archive(body: Dict[str, Any]) -> ArchiveWarning:
    for key, reason in _ARCHIVE_KEYS.items():
        if key in body:
            return ArchiveWarning(reason=reason)
    raise ValueError(f"unrecognized archive warning: {sorted(body)}")


_WARNING_PARSERS: List[Tuple[str, Callable[[Dict[str, Any]], BaseModel]]] = [
    ("compileWarning", lambda b: CompileWarning(message=b.get("warningMessage") or "")),
    (
        "timeRangeWarning",
        lambda b: TimeRangeWarning(
            message=b.get("warningMessage") or "",
            start_date=b.get("startDate"),
            end_date=b.get("endDate"),
        ),
    ),
    ("numberOfResultsLimitWarning", lambda b: ResultsLimitWarning(limit=b.get("numberOfResultsLimit"))),
    ("bytesScannedLimitWarning", lambda b: BytesScannedLimitWarning()),
    ("deprecationWarning", lambda b: DeprecatedFeatureWarning(message=b.get("warningMessage") or "")),
    ("blocksLimitWarning", lambda b: BlocksLimitWarning()),
    (
        "aggregationBucketsLimitWarning",
        lambda b: AggregationBucketsLimitWarning(limit=b.get("aggregationBucketsLimit")),
    ),
    ("archiveWarning", _archive),
    ("scrollTimeoutWarning", lambda b: ScrollTimeoutWarning()),
    ("fieldCountLimitWarning", lambda b: FieldCountLimitWarning()),
    ("shuffleFileSizeLimitReachedWarning", lambda b: ShuffleFileSizeLimitWarning()),
    ("filesReadLimitWarning", lambda b: FilesReadLimitWarning()),
    (
        "sidebarFilterCardinalityLimitWarning",
        lambda b: SidebarCardinalityLimitWarning(
            fields=[str(f) for f in (b.get("fields") or [])],
            cardinality_limit=str(b.get("cardinalityLimit", "")),
        ),
    ),
]


def parse_warning(raw: Any) -> QueryWarning:
    """Map one wire warning object onto its variant; never raises."""
    if isinstance(raw, dict):
        for key, build in _WARNING_PARSERS:
            if key not in raw:
                continue
            body = raw[key] if isinstance(raw[key], dict) else {}
            try:
                return build(body)
            except (ValidationError, ValueError, TypeError) as exc:
                logger.warning("Malformed %s in query response: %s", key, exc)
                break
    logger.warning("Unrecognized warning shape: %r", raw)
    return UnknownWarning(raw=raw)


def parse_warnings(raw: Any) -> List[QueryWarning]:
    if not isinstance(raw, list):
        return []
    return [parse_warning(w) for w in raw]


def parse_service_error(raw: Any) -> ServiceError:
    """Map an ``{"message", "code"}`` error object onto its variant."""
    if not isinstance(raw, dict):
        return GenericServiceError(message=str(raw) if raw is not None else "")
    message = str(raw.get("message") or "")
    code = raw.get("code")
    if isinstance(code, dict) and "rateLimitReached" in code:
        return RateLimitReached(message=message)
    return GenericServiceError(message=message)


# Order matters: "bucket read failed on metastore" is a metadata problem first.
_FAILURE_PATTERNS: List[Tuple[FailureReason, "re.Pattern[str]"]] = [
    (FailureReason.MISSING_ARCHIVE_METADATA, re.compile(r"metastore|archive metadata|missing (archive )?metadata", re.I)),
    (FailureReason.STORAGE_ACCESS, re.compile(r"access denied|permission|forbidden|read failed|bucket (access|read)|storage (access|error|read)", re.I)),
    (FailureReason.BYTES_SCANNED_LIMIT, re.compile(r"bytes?[ _-]?scanned|scanned[ _-]?bytes|scan(ning)? limit", re.I)),
    (FailureReason.RESULTS_LIMIT, re.compile(r"(number of |max(imum)? |too many )results?|results?[ _-]?(limit|count)", re.I)),
    (FailureReason.SCROLL_TIMEOUT, re.compile(r"scroll|session timeout|timed? ?out", re.I)),
]


def classify_failure(reason: Any) -> JobFailure:
    """Turn the service's free-text failure reason into a :class:`JobFailure`."""
    message = "" if reason is None else str(reason)
    for kind, pattern in _FAILURE_PATTERNS:
        if pattern.search(message):
            return JobFailure(reason=kind, message=message)
    return JobFailure(reason=FailureReason.UNKNOWN, message=message)


# ---------------------------------------------------------------------------
# Variant -> text
# ---------------------------------------------------------------------------

_ARCHIVE_TEXT: Dict[ArchiveWarningKind, str] = {
    ArchiveWarningKind.NO_METASTORE_DATA: "No metastore data available",
    ArchiveWarningKind.BUCKET_ACCESS_DENIED: "Bucket access denied",
    ArchiveWarningKind.BUCKET_READ_FAILED: "Bucket read failed",
    ArchiveWarningKind.MISSING_DATA: "Missing data",
}


def _time_range(w: TimeRangeWarning) -> str:
    text = f"Time Range Warning: {w.message}"
    if w.start_date or w.end_date:
        text += f" (effective range: {w.start_date or '?'} to {w.end_date or '?'})"
    return text


_WARNING_DESCRIBERS: Dict[Type[BaseModel], Callable[[Any], str]] = {
    CompileWarning: lambda w: f"Compile Warning: {w.message}",
    TimeRangeWarning: _time_range,
    ResultsLimitWarning: lambda w: f"Results Limit Warning: Limited to {w.limit} results",
    BytesScannedLimitWarning: lambda w: "Bytes Scanned Limit Warning: Reached bytes scanning limit",
    DeprecatedFeatureWarning: lambda w: f"Deprecation Warning: {w.message}",
    BlocksLimitWarning: lambda w: "Blocks Limit Warning: Reached maximum number of parquet blocks",
    AggregationBucketsLimitWarning: lambda w: (
        f"Aggregation Buckets Limit Warning: Limited to {w.limit} buckets"
    ),
    ArchiveWarning: lambda w: f"Archive Warning: {_ARCHIVE_TEXT[w.reason]}",
    ScrollTimeoutWarning: lambda w: "Scroll Timeout Warning: OpenSearch scroll timeout reached",
    FieldCountLimitWarning: lambda w: "Field Count Limit Warning: Number of fields truncated",
    ShuffleFileSizeLimitWarning: lambda w: (
        "Shuffle File Size Limit Warning: Limit reached during join operation"
    ),
    FilesReadLimitWarning: lambda w: "Files Read Limit Warning: Maximum number of parquet files reached",
    SidebarCardinalityLimitWarning: lambda w: (
        f"Sidebar Filter Cardinality Warning: Fields {', '.join(w.fields)} "
        f"reached cardinality limit of {w.cardinality_limit}"
    ),
    UnknownWarning: lambda w: UNKNOWN_WARNING_TEXT,
}

_FAILURE_GUIDANCE: Dict[FailureReason, Tuple[str, str]] = {
    FailureReason.RESULTS_LIMIT: (
        "Exceeded maximum result count",
        "Narrow the time range or add a limit to the query.",
    ),
    FailureReason.BYTES_SCANNED_LIMIT: (
        "Exceeded scanned-bytes budget",
        "Add filters (application, subsystem, severity) so less data is scanned.",
    ),
    FailureReason.MISSING_ARCHIVE_METADATA: (
        "Missing archive metadata",
        "Check that the requested time range was actually archived.",
    ),
    FailureReason.STORAGE_ACCESS: (
        "Archive storage access failed",
        "Check the archive bucket integration and its permissions.",
    ),
    FailureReason.SCROLL_TIMEOUT: (
        "Query session timed out",
        "Split the work into smaller queries or shorter time ranges.",
    ),
    FailureReason.UNKNOWN: (UNKNOWN_ERROR_TEXT, ""),
}

_SERVICE_ERROR_DESCRIBERS: Dict[Type[BaseModel], Callable[[Any], str]] = {
    RateLimitReached: lambda e: (
        f"{e.message or 'Rate limit reached'}\n"
        "Rate limit reached. Please wait before making more requests."
    ),
    GenericServiceError: lambda e: e.message or UNKNOWN_ERROR_TEXT,
}


def _union_members(alias: Any) -> set:
    # Annotated[Union[...], Field(...)] -> the Union's member classes
    union = get_args(alias)[0]
    return set(get_args(union))


def _check_exhaustive() -> None:
    missing_w = _union_members(QueryWarning) - set(_WARNING_DESCRIBERS)
    missing_e = _union_members(ServiceError) - set(_SERVICE_ERROR_DESCRIBERS)
    missing_f = set(FailureReason) - set(_FAILURE_GUIDANCE)
    missing = sorted(
        [c.__name__ for c in missing_w | missing_e] + [r.value for r in missing_f]
    )
    if missing:
        raise RuntimeError(f"classifier has no description for: {', '.join(missing)}")


_check_exhaustive()


def describe_warning(warning: Union[BaseModel, Dict[str, Any], Any]) -> str:
    """Human-readable text for a warning variant or a raw wire warning object."""
    if not isinstance(warning, BaseModel):
        warning = parse_warning(warning)
    describe = _WARNING_DESCRIBERS.get(type(warning))
    if describe is None:
        return UNKNOWN_WARNING_TEXT
    return describe(warning)


def describe_failure(failure: Union[JobFailure, str, None]) -> str:
    """Category, verbatim reason and remediation hint for a failed job."""
    if not isinstance(failure, JobFailure):
        failure = classify_failure(failure)
    category, hint = _FAILURE_GUIDANCE.get(failure.reason, _FAILURE_GUIDANCE[FailureReason.UNKNOWN])
    text = f"{category}: {failure.message}" if failure.message else category
    if hint:
        text += f"\nSuggestion: {hint}"
    return text


def describe_service_error(error: Union[BaseModel, Dict[str, Any], Any]) -> str:
    if not isinstance(error, BaseModel):
        error = parse_service_error(error)
    describe = _SERVICE_ERROR_DESCRIBERS.get(type(error))
    if describe is None:
        return UNKNOWN_ERROR_TEXT
    return describe(error)
