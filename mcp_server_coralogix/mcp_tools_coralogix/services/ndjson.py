from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple

from ..core.diagnostics import get_logger
from ..core.schemas import DecodedRecord, KeyValue, QueryFrame, StreamingQueryResponse
from .classifier import parse_service_error, parse_warning

logger = get_logger("ndjson")

# Long lines are cut in diagnostics; the full text is of no use in a log
_MAX_LOGGED_LINE = 500


def decode_ndjson(body: str) -> List[Any]:
    """Decode a newline-delimited JSON body, one document per non-blank line.

    Lines that are not valid JSON are skipped and reported on the diagnostics
    channel; decoding continues with the next line. Document order is kept.
    """
    documents, _ = _decode(body)
    return documents


def _decode(body: str) -> Tuple[List[Any], int]:
    if not isinstance(body, str):
        raise TypeError(f"NDJSON body must be str, not {type(body).__name__}")

    documents: List[Any] = []
    skipped = 0
    for lineno, line in enumerate(body.split("\n"), start=1):
        text = line.strip()
        if not text:
            continue
        try:
            documents.append(json.loads(text))
        except (ValueError, RecursionError) as exc:
            skipped += 1
            shown = text if len(text) <= _MAX_LOGGED_LINE else text[:_MAX_LOGGED_LINE] + "..."
            logger.warning("Skipping malformed NDJSON line %d (%s): %s", lineno, exc, shown)
    return documents, skipped


def _pairs(raw: Any) -> List[KeyValue]:
    pairs: List[KeyValue] = []
    if not isinstance(raw, list):
        return pairs
    for item in raw:
        if not isinstance(item, dict):
            continue
        value = item.get("value")
        pairs.append(KeyValue(key=str(item.get("key", "")), value="" if value is None else str(value)))
    return pairs


def record_from_wire(raw: Dict[str, Any]) -> DecodedRecord:
    """Build a :class:`DecodedRecord`; ``userData`` is parsed as JSON when possible."""
    user_data = raw.get("userData")
    if user_data is None:
        payload = ""
    elif isinstance(user_data, str):
        payload = user_data
    else:
        payload = json.dumps(user_data)

    parsed: Any = None
    is_json = False
    if payload:
        try:
            parsed = json.loads(payload)
            is_json = True
        except (ValueError, RecursionError):
            pass

    return DecodedRecord(
        metadata=_pairs(raw.get("metadata")),
        labels=_pairs(raw.get("labels")),
        payload=payload,
        parsed_payload=parsed,
        payload_is_json=is_json,
    )


def records_from_result(result: Any) -> Optional[List[DecodedRecord]]:
    """Records of a ``{"results": [...]}`` object, or None if it has none."""
    if not isinstance(result, dict) or not isinstance(result.get("results"), list):
        return None
    return [record_from_wire(r) for r in result["results"] if isinstance(r, dict)]


def _query_id(raw: Any) -> Optional[str]:
    if isinstance(raw, dict):
        raw = raw.get("queryId")
    return str(raw) if raw else None


def frame_from_document(doc: Any) -> QueryFrame:
    if not isinstance(doc, dict):
        logger.warning("Unrecognized query response line: %r", doc)
        return QueryFrame(unrecognized=doc)

    frame = QueryFrame(query_id=_query_id(doc.get("queryId")))
    known = frame.query_id is not None
    if "error" in doc:
        frame.error = parse_service_error(doc["error"])
        known = True
    if "warning" in doc:
        frame.warning = parse_warning(doc["warning"])
        known = True
    if "result" in doc:
        frame.records = records_from_result(doc["result"])
        if frame.records is None:
            frame.records = []
            logger.warning("Query result line without a results list: %r", doc["result"])
        known = True
    if not known:
        logger.warning("Unrecognized query response line: %r", doc)
        frame.unrecognized = doc
    return frame


def decode_streaming_query_response(body: str) -> StreamingQueryResponse:
    """Decode a synchronous query response body into frames, one per line."""
    documents, skipped = _decode(body)
    return StreamingQueryResponse(
        frames=[frame_from_document(d) for d in documents],
        skipped_lines=skipped,
    )


def load_documents(body: str) -> List[Any]:
    """Documents of a body that is either one JSON value or NDJSON."""
    if not isinstance(body, str):
        raise TypeError(f"response body must be str, not {type(body).__name__}")
    if not body.strip():
        return []
    try:
        return [json.loads(body)]
    except (ValueError, RecursionError):
        return decode_ndjson(body)
