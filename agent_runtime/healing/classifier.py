"""Regex classification of error text into repair classes."""

import re

from ..models import ErrorType

# First match wins.
ERROR_PATTERNS: list[tuple[re.Pattern, ErrorType]] = [
    (re.compile(r"network|fetch|ECONNREFUSED|ENOTFOUND|timeout|aborted", re.I), ErrorType.NETWORK),
    (re.compile(r"auth|unauthorized|forbidden|401|403|token|credential", re.I), ErrorType.AUTH),
    (re.compile(r"validation|invalid|required|missing|schema|type error", re.I), ErrorType.VALIDATION),
    (re.compile(r"rate.?limit|429|too many requests|throttl", re.I), ErrorType.RATE_LIMIT),
    (re.compile(r"schema|mismatch|unexpected.?field|unknown.?property", re.I), ErrorType.SCHEMA_MISMATCH),
    (re.compile(r"not.?found|404|does.?not.?exist", re.I), ErrorType.NOT_FOUND),
    (re.compile(r"permission|denied|access", re.I), ErrorType.PERMISSION),
    (re.compile(r"500|internal.?server|server.?error", re.I), ErrorType.SERVER_ERROR),
]

REPAIR_STRATEGIES: dict[ErrorType, str] = {
    ErrorType.NETWORK: "Retry with exponential backoff (1s, 2s, 4s). If still failing, check network connectivity.",
    ErrorType.AUTH: "Refresh authentication credentials. If OAuth, attempt token refresh. If API key, verify key validity.",
    ErrorType.VALIDATION: "Review input data against expected schema. Transform data to match required format.",
    ErrorType.RATE_LIMIT: "Wait for rate limit window to reset (typically 60s). Reduce request frequency.",
    ErrorType.SCHEMA_MISMATCH: "Transform data to match the expected schema. Map fields to correct names and types.",
    ErrorType.NOT_FOUND: "Verify resource exists. Check ID/path. Create resource if appropriate.",
    ErrorType.PERMISSION: "Check connector permissions. Request elevated access if needed.",
    ErrorType.SERVER_ERROR: "Retry after brief delay. If persistent, use fallback connector or alternative approach.",
    ErrorType.UNKNOWN: "Analyze error context and attempt alternative approach.",
}


def error_text(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        return str(error) or error.__class__.__name__
    return str(error)


def classify_error(error: BaseException | str) -> ErrorType:
    message = error_text(error)
    for pattern, error_type in ERROR_PATTERNS:
        if pattern.search(message):
            return error_type
    return ErrorType.UNKNOWN


def repair_strategy(error_type: ErrorType) -> str:
    return REPAIR_STRATEGIES[error_type]
