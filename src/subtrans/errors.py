"""Fault taxonomy for the capture → OCR → translate pipeline.

None of these are process-fatal. The orchestrator catches each one at the
stage that raised it and turns the cycle into a logged skip.
"""


class SubtransError(Exception):
    """Base class for all pipeline faults."""


class CaptureFault(SubtransError):
    """Screen grab failed. Skip the cycle and retry on the next tick."""


class OcrFault(SubtransError):
    """OCR engine unavailable or input unreadable. Skip the cycle."""


class TranslationError(SubtransError):
    """Base class for translation failures."""


class ProviderFailed(TranslationError):
    """A single provider failed; the chain advances to the next one."""

    def __init__(self, provider: str, reason: str):
        super().__init__(f"{provider}: {reason}")
        self.provider = provider
        self.reason = reason


class QuotaExceeded(ProviderFailed):
    """Provider hit its per-session request cap. Treated as unavailable."""

    def __init__(self, provider: str, limit: int):
        super().__init__(provider, f"session limit reached ({limit} requests)")
        self.limit = limit


class AllProvidersFailed(TranslationError):
    """Every provider in the chain failed. Terminal for the cycle."""

    def __init__(self, failures: list[ProviderFailed]):
        names = ", ".join(f.provider for f in failures) or "none configured"
        super().__init__(f"all translation providers failed ({names})")
        self.failures = failures
