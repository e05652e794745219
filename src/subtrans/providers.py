"""Ordered translation provider chain with fallback and session quota."""

from collections.abc import Callable

from . import log
from .backends.base import TranslationBackend
from .backends.registry import BackendRegistry, get_registry
from .config import Config, ConfigStore
from .errors import AllProvidersFailed, ProviderFailed, QuotaExceeded
from .session import SessionState

logger = log.get_logger()

# Provider whose requests are capped per session and which takes context
CAPPED_PROVIDER = "openai"

BackendFactory = Callable[[str, Config], TranslationBackend]


def resolve_order(config: Config, provider_order: list[str] | tuple[str, ...] | None = None) -> list[str]:
    """Provider ids to try, in order, with the fallback appended if missing."""
    order = list(provider_order) if provider_order else list(config.translation.providers)
    fallback = config.translation.fallback_provider
    if fallback and fallback not in order:
        order.append(fallback)

    seen = set()
    unique = []
    for provider in order:
        provider = provider.strip().lower()
        if provider and provider not in seen:
            seen.add(provider)
            unique.append(provider)
    return unique


class ProviderChain:
    """Tries providers in order until one returns a translation.

    A fresh backend is built from the live config for every attempt, so a
    failing provider leaves nothing behind that another provider could see.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        session: SessionState,
        registry: BackendRegistry | None = None,
        backend_factory: BackendFactory | None = None,
    ):
        self._config_store = config_store
        self._session = session
        self._registry = registry
        self._backend_factory = backend_factory or self._build_backend

    def _build_backend(self, provider: str, config: Config) -> TranslationBackend:
        registry = self._registry or get_registry()
        backend_class = registry.get_translation_backend_by_id(provider)
        if backend_class is None:
            raise ProviderFailed(provider, "unknown provider")
        return backend_class.from_config(config)

    def _acquire(self, provider: str, config: Config) -> None:
        """Count one request, refusing when the capped provider is at its limit."""
        counters = self._session.counters
        if provider != CAPPED_PROVIDER:
            counters.increment(provider)
            return

        limit = config.openai.max_requests_per_session
        if not counters.try_acquire(provider, limit):
            raise QuotaExceeded(provider, limit)

        limit_str = str(limit) if limit > 0 else "unlimited"
        logger.debug("capped provider request", provider=provider, count=counters.get(provider), limit=limit_str)

    def _attempt(self, provider: str, text: str, source: str, target: str, config: Config) -> str:
        history = None
        if provider == CAPPED_PROVIDER and config.openai.context_lines > 0:
            history = self._session.history.recent_pairs(config.openai.context_lines)

        try:
            backend = self._backend_factory(provider, config)
            self._acquire(provider, config)
            return backend.translate(text, source, target, history=history)
        except ProviderFailed:
            raise
        except Exception as e:
            raise ProviderFailed(provider, f"unexpected error: {e}") from e

    def translate(
        self,
        text: str,
        source_language: str,
        target_language: str,
        provider_order: list[str] | tuple[str, ...] | None = None,
    ) -> str:
        """Translate text with the first provider that succeeds.

        Args:
            text: Source text.
            source_language: ISO code of the source language.
            target_language: ISO code of the target language.
            provider_order: Override for the configured order.

        Returns:
            Translated text.

        Raises:
            AllProvidersFailed: If every provider failed or was unavailable.
        """
        config = self._config_store.snapshot()
        pending = resolve_order(config, provider_order)
        fallback = config.translation.fallback_provider
        failures: list[ProviderFailed] = []

        while pending:
            provider = pending.pop(0)
            try:
                translated = self._attempt(provider, text, source_language, target_language, config)
            except QuotaExceeded as e:
                logger.info("provider quota reached, using fallback", provider=provider, fallback=fallback, limit=e.limit)
                failures.append(e)
                # Go straight to the fallback instead of the next in line
                if fallback in pending:
                    pending.remove(fallback)
                    pending.insert(0, fallback)
                continue
            except ProviderFailed as e:
                logger.warning("provider failed", provider=e.provider, reason=e.reason)
                failures.append(e)
                continue

            logger.debug("translated", provider=provider, text=translated)
            return translated

        raise AllProvidersFailed(failures)
