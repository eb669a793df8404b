"""Fallback orchestrator: tries providers in a fixed order and always answers.

The requested provider goes first, then the global secondary order. When no
provider produces text the caller gets a mock reply instead of an error. A
requested provider without an API key is answered by the mock at once;
unconfigured providers later in the chain are skipped.
"""

from __future__ import annotations

import logging
import time
from typing import Final

from chat_gateway.core.error_messages import describe_error_kind
from chat_gateway.core.mock_responder import ALL_UNAVAILABLE_REASON, mock_response
from chat_gateway.infra.llm.base import AIResult, ErrorKind, ProviderAdapter, ProviderError, ProviderOutcome
from chat_gateway.infra.llm.registry import ProviderRegistry
from chat_gateway.infra.request_context import RequestContext, add_trace, elapsed_ms, log_error, log_event
from chat_gateway.infra.resilience import CircuitBreakerConfig, CircuitBreakerRegistry

LOGGER = logging.getLogger(__name__)

SECONDARY_ORDER: Final[tuple[str, ...]] = ("gemini", "groq", "claude", "openai")
MOCK_PROVIDER_ID: Final[str] = "mock"


class FallbackOrchestrator:
    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        default_provider: str = "gemini",
        secondary_order: tuple[str, ...] = SECONDARY_ORDER,
        circuit_breakers: CircuitBreakerRegistry | None = None,
    ) -> None:
        self._registry = registry
        self._default_provider = default_provider.strip().lower()
        self._secondary_order = tuple(item.strip().lower() for item in secondary_order)
        self._circuit_breakers = circuit_breakers or CircuitBreakerRegistry(config=CircuitBreakerConfig())

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def default_provider(self) -> str:
        return self._default_provider

    def resolve(self, requested_provider_id: str | None) -> ProviderAdapter | None:
        adapter = self._registry.get(requested_provider_id)
        if adapter is not None:
            return adapter
        adapter = self._registry.get(self._default_provider)
        if adapter is not None:
            return adapter
        return next(iter(self._registry), None)

    def fallback_chain(self, requested_provider_id: str | None) -> list[str]:
        first = self.resolve(requested_provider_id)
        chain: list[str] = []
        if first is not None:
            chain.append(first.provider_id)
        for provider_id in self._secondary_order:
            if provider_id in chain or provider_id not in self._registry:
                continue
            chain.append(provider_id)
        return chain

    async def dispatch(
        self,
        requested_provider_id: str | None,
        prompt: str,
        language: str = "en",
        *,
        request_context: RequestContext | None = None,
    ) -> AIResult:
        chain = self.fallback_chain(requested_provider_id)
        errors: list[ProviderError] = []
        first = self._registry.get(chain[0]) if chain else None
        if first is not None and not first.configured:
            # No key for the provider that was asked for: answer with a mock, never reroute.
            reason = f"{first.display_name} not configured"
            log_event(
                LOGGER,
                request_context,
                component="fallback",
                event="provider.not_configured",
                status="degraded",
                requested=requested_provider_id or "-",
                provider=first.provider_id,
                reason=reason,
            )
            error = ProviderError(provider_id=first.provider_id, kind=ErrorKind.NOT_CONFIGURED, message=reason)
            return self._mock(prompt, language, reason, (error,))

        for index, provider_id in enumerate(chain):
            adapter = self._registry.get(provider_id)
            if adapter is None or not adapter.configured:
                continue
            if index > 0:
                log_event(
                    LOGGER,
                    request_context,
                    component="fallback",
                    event="fallback.next",
                    status="degraded",
                    requested=requested_provider_id or "-",
                    provider=provider_id,
                    reason=describe_error_kind(errors[-1].kind) if errors else "-",
                )
            outcome = await self._attempt(adapter, prompt, language, request_context)
            if outcome.result is not None:
                return AIResult(
                    text=outcome.result.text,
                    provider_id=adapter.provider_id,
                    errors=tuple(errors),
                )
            if outcome.error is not None:
                errors.append(outcome.error)

        log_event(
            LOGGER,
            request_context,
            component="fallback",
            event="fallback.exhausted",
            status="degraded",
            requested=requested_provider_id or "-",
            attempts=len(errors),
            reason=ALL_UNAVAILABLE_REASON,
        )
        return self._mock(prompt, language, ALL_UNAVAILABLE_REASON, tuple(errors))

    @staticmethod
    def _mock(prompt: str, language: str, reason: str, errors: tuple[ProviderError, ...]) -> AIResult:
        return AIResult(
            text=mock_response(prompt, language, reason),
            provider_id=MOCK_PROVIDER_ID,
            mock=True,
            reason=reason,
            errors=errors,
        )

    async def _attempt(
        self,
        adapter: ProviderAdapter,
        prompt: str,
        language: str,
        request_context: RequestContext | None,
    ) -> ProviderOutcome:
        provider_id = adapter.provider_id
        breaker = self._circuit_breakers.get(provider_id)
        allowed, circuit_event = breaker.allow_request()
        if circuit_event:
            log_event(LOGGER, request_context, component="provider", event=circuit_event, provider=provider_id)
        if not allowed:
            log_event(
                LOGGER,
                request_context,
                component="provider",
                event="circuit.short_circuit",
                status="error",
                provider=provider_id,
                retry_after_s=round(breaker.retry_after(), 1),
            )
            add_trace(
                request_context,
                step="provider.call",
                component="provider",
                name=provider_id,
                status="skipped",
            )
            return ProviderOutcome.failure(provider_id, ErrorKind.UNKNOWN, f"{adapter.display_name}: circuit open")

        start_time = time.monotonic()
        log_event(
            LOGGER,
            request_context,
            component="provider",
            event="provider.call.start",
            provider=provider_id,
            language=language,
            prompt=prompt,
        )
        try:
            outcome = await adapter.invoke(prompt, language)
        except Exception as exc:
            log_error(LOGGER, request_context, component="provider", where="provider.invoke", exc=exc)
            outcome = ProviderOutcome.failure(provider_id, ErrorKind.UNKNOWN, f"{adapter.display_name}: {exc}")

        if outcome.ok:
            circuit_event = breaker.record_success()
            status = "ok"
        else:
            circuit_event = breaker.record_failure()
            status = "error"
        if circuit_event:
            log_event(
                LOGGER,
                request_context,
                component="provider",
                event=circuit_event,
                status=status,
                provider=provider_id,
            )

        duration_ms = elapsed_ms(start_time)
        log_event(
            LOGGER,
            request_context,
            component="provider",
            event="provider.call.end",
            status=status,
            duration_ms=duration_ms,
            provider=provider_id,
            kind=outcome.error.kind.value if outcome.error else "-",
        )
        add_trace(
            request_context,
            step="provider.call",
            component="provider",
            name=provider_id,
            status=status,
            duration_ms=duration_ms,
        )
        return outcome
