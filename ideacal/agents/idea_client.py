"""Single-idea generation against an unreliable text provider.

The retry loop is an explicit state machine. ``step`` runs one attempt from an
``Attempting`` state and returns ``Success``, ``Retry`` or ``Exhausted``;
``generate`` walks those states, sleeping between attempts, and returns
``Success`` or ``Exhausted``. Callers branch on the result type instead of
catching exceptions.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Union

from ideacal.agents.base import IdeaGenerator
from ideacal.agents.idea_parsing import parse_idea_payload
from ideacal.agents.idea_prompts import build_idea_prompt
from ideacal.agents.provider import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_PRIMARY_MODEL,
    DEFAULT_SECONDARY_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
    TextProvider,
)
from ideacal.shared.logging_utils import info as log_info, warning as log_warning
from ideacal.shared.retry_utils import RetryPolicy
from ideacal.specs.common.errors import (
    GenerationExhaustedError,
    IdeaCalError,
    MalformedResponseError,
    ProviderTransientError,
)
from ideacal.specs.models.domain import GenerationParams, IdeaPayload


@dataclass(frozen=True)
class Attempting:
    model: str
    retry_count: int


@dataclass(frozen=True)
class Success:
    payload: IdeaPayload
    model: str
    attempts: int


@dataclass(frozen=True)
class Retry:
    next_model: str
    retry_count: int
    delay: float
    error: str


@dataclass(frozen=True)
class Exhausted:
    attempts: int
    last_error: str


StepResult = Union[Success, Retry, Exhausted]
GenerationOutcome = Union[Success, Exhausted]


class GenerationClient(IdeaGenerator):
    def __init__(
        self,
        provider: Optional[TextProvider],
        *,
        primary_model: str = DEFAULT_PRIMARY_MODEL,
        secondary_model: str = DEFAULT_SECONDARY_MODEL,
        policy: Optional[RetryPolicy] = None,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__()
        self.provider = provider
        self.primary_model = primary_model
        self.secondary_model = secondary_model
        self.policy = policy or RetryPolicy()
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.sleep = sleep

    def _complete(self, prompt: str, model: str) -> str:
        try:
            return self.provider.complete(
                prompt=prompt,
                model=model,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                timeout=self.timeout,
            )
        except IdeaCalError:
            raise
        except Exception as exc:
            # transport errors from any TextProvider are retried like provider errors
            raise ProviderTransientError(f"{type(exc).__name__}: {exc}", details={"model": model}) from exc

    def step(self, params: GenerationParams, prompt: str, state: Attempting) -> StepResult:
        try:
            raw = self._complete(prompt, state.model)
            payload = parse_idea_payload(raw, params)
        except (ProviderTransientError, MalformedResponseError) as exc:
            error = f"{exc.code}: {exc}"
            if not self.policy.can_retry(state.retry_count):
                return Exhausted(attempts=state.retry_count + 1, last_error=error)
            next_retry = state.retry_count + 1
            return Retry(
                next_model=self.policy.model_for(next_retry, self.primary_model, self.secondary_model),
                retry_count=next_retry,
                delay=self.policy.delay_before(next_retry),
                error=error,
            )
        return Success(payload=payload, model=state.model, attempts=state.retry_count + 1)

    def generate(self, params: GenerationParams) -> GenerationOutcome:
        if self.provider is None:
            log_warning(self._batch_id, "generation:provider_unconfigured")
            return Exhausted(attempts=0, last_error="text provider not configured")

        prompt = build_idea_prompt(params)
        state = Attempting(model=self.primary_model, retry_count=0)
        while True:
            result = self.step(params, prompt, state)
            if isinstance(result, Retry):
                log_warning(
                    self._batch_id,
                    "generation:retry",
                    model=state.model,
                    nextModel=result.next_model,
                    retry=result.retry_count,
                    delaySeconds=result.delay,
                    error=result.error,
                )
                self.sleep(result.delay)
                state = Attempting(model=result.next_model, retry_count=result.retry_count)
                continue
            if isinstance(result, Success):
                log_info(self._batch_id, "generation:success", model=result.model, attempts=result.attempts)
            else:
                log_warning(
                    self._batch_id,
                    "generation:exhausted",
                    attempts=result.attempts,
                    error=result.last_error,
                )
            return result

    def generate_or_raise(self, params: GenerationParams) -> IdeaPayload:
        """Like ``generate`` but raises when every attempt failed.

        Raises:
            GenerationExhaustedError: all attempts failed
        """
        outcome = self.generate(params)
        if isinstance(outcome, Exhausted):
            raise GenerationExhaustedError(outcome.attempts, outcome.last_error)
        return outcome.payload

    def run(self, params: GenerationParams) -> IdeaPayload:
        return self.generate_or_raise(params)
