"""Errors raised by the AI layer."""


class AIError(Exception):
    """Base class for every failure coming out of an LLM call."""

    status_code = 502


class AIUnavailableError(AIError):
    """No API key configured."""

    status_code = 503


class AIQuotaError(AIError):
    """Provider rate limit / quota hit. Never retried."""

    status_code = 429


class AIResponseError(AIError):
    """The model answered, but not with the JSON shape we asked for."""

    status_code = 502
