# hamkae/tools/json_extract.py
import json
import math
import re

from hamkae.schemas.verification import VerificationSummary
from hamkae.tools.logger import get_logger

REASON_KEYS = ("reason", "reasoning", "explanation", "comment")
RECOGNIZED_KEYS = ("verification_result", "confidence") + REASON_KEYS

APPROVED_CONFIDENCE = 90
REJECTED_CONFIDENCE = 0
RAW_EXCERPT_CHARS = 100

_NUMBER_RE = re.compile(r"(\d+\.?\d*)")

log = get_logger("json_extract")


def normalize_response_text(text: str) -> str:
    """
    Undo string-literal escaping left in stored model output:
    literal \\n, \\t, \\r become spaces, \\" becomes a quote,
    whitespace runs collapse to one space.
    """
    cleaned = (
        text.replace("\\n", " ")
        .replace('\\"', '"')
        .replace("\\t", " ")
        .replace("\\r", " ")
    )
    return re.sub(r"\s+", " ", cleaned).strip()


def iter_brace_spans(text: str):
    """
    Yield (depth, span) for every balanced {...} substring, in the order the
    closing brace is reached (inner objects before the object containing them).
    depth is 1 for a top-level span, 2 for a span nested one level, and so on.
    Unmatched closing braces are ignored.
    """
    stack = []
    for i, ch in enumerate(text):
        if ch == "{":
            stack.append(i)
        elif ch == "}" and stack:
            depth = len(stack)
            start = stack.pop()
            yield depth, text[start:i + 1]


def _is_relevant(parsed) -> bool:
    if not isinstance(parsed, dict):
        return False
    return any(parsed.get(k) is not None for k in RECOGNIZED_KEYS)


def find_best_candidate(text: str) -> dict | None:
    """Deepest decodable span carrying a recognized key. Ties keep the earliest."""
    best = None
    best_depth = 0
    for depth, span in iter_brace_spans(text):
        try:
            parsed = json.loads(span)
        except (ValueError, RecursionError):
            continue
        if not _is_relevant(parsed):
            continue
        if depth > best_depth:
            best = parsed
            best_depth = depth
    return best


def to_percent(value) -> int | None:
    """0-1 fraction -> integer percentage, rounding halves up. None if not numeric."""
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    scaled = num * 100 + 0.5
    if math.isnan(scaled) or math.isinf(scaled):
        return None
    return int(math.floor(scaled))


def _summary_from_payload(payload: dict) -> VerificationSummary:
    summary = VerificationSummary()
    if payload.get("confidence") is not None:
        summary.confidence = to_percent(payload["confidence"])
    for key in REASON_KEYS:
        value = payload.get(key)
        if value:
            summary.reasoning = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
            break
    return summary


def _fallback_summary(text: str) -> VerificationSummary:
    if "APPROVED" in text:
        return VerificationSummary(verification_result="APPROVED", confidence=APPROVED_CONFIDENCE)
    if "REJECTED" in text:
        return VerificationSummary(verification_result="REJECTED", confidence=REJECTED_CONFIDENCE)

    # Only a 0-1 fraction reads as a confidence; "checked 500 photos" does not.
    match = _NUMBER_RE.search(text)
    if match:
        confidence = to_percent(match.group(1))
        if confidence is not None and 0 <= confidence <= 100:
            return VerificationSummary(confidence=confidence, verification_result="UNKNOWN")

    return VerificationSummary(verification_result="UNKNOWN", raw=text[:RAW_EXCERPT_CHARS] + "...")


def extract_verification_summary(text) -> VerificationSummary:
    """
    Summarize an AI verification response (the `gptResponse` field) for display.

    The model is asked for JSON but often wraps it in prose, escapes it as a
    string literal, or nests it inside another object. The deepest balanced
    {...} span that decodes and carries a recognized key wins; confidence is
    turned into a percentage and the first of reason/reasoning/explanation/
    comment becomes the reasoning. Without such a span, plain keyword and
    number matching on the unmodified input is used instead.

    Never raises. Empty or non-string input gives an empty summary.
    """
    if not text or not isinstance(text, str):
        return VerificationSummary()

    payload = find_best_candidate(normalize_response_text(text))
    if payload is not None:
        summary = _summary_from_payload(payload)
        log.debug(f"Extracted verification payload: {summary.as_dict()}")
        return summary

    summary = _fallback_summary(text)
    log.debug(f"No JSON payload in response, fallback result: {summary.as_dict()}")
    return summary
