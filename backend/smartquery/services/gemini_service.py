"""
SmartQuery Backend: Google Gemini SQL Assistant
===============================================

What:  LLMService implementation that explains, fixes and generates SQL with
       Google Gemini.
How:   Builds an action-specific prompt, then walks an ordered list of models
       until one returns a non-empty answer. Each model attempt is wrapped in
       tenacity retries; a circuit breaker fails fast while Gemini is down.
Who:   Singleton used by the /api/ai/{action} route.

Resilience Strategy:
    1. Model fallback: gemini_models is tried in order (e.g. flash → pro)
    2. Tenacity retry with exponential backoff + jitter per model
    3. Circuit breaker to stop hammering Gemini after repeated failures
    4. Per-call timeout via request_options
"""

import logging
import re
import time
import uuid
from typing import Dict, List, Optional

import google.generativeai as genai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from smartquery.config import settings
from smartquery.exceptions import CircuitBreakerOpenError, LLMServiceError, ValidationError
from smartquery.services.llm_base import ACTIONS, EXPLAIN, FIX, GENERATE, LLMService

logger = logging.getLogger(__name__)

# Matches a whole answer wrapped in ``` or ```sql fences
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fences(answer: str) -> str:
    """Remove one pair of surrounding Markdown code fences, if present."""
    answer = answer.strip()
    match = _FENCE_RE.match(answer)
    if match:
        return match.group(1).strip()
    return answer


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker Implementation
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    Implements the circuit breaker pattern to prevent cascade failures.

    State Machine:
        CLOSED (normal operation)
            → On failure: increment failure_count
            → When failure_count >= threshold: transition to OPEN

        OPEN (rejecting all requests)
            → All calls raise CircuitBreakerOpenError immediately
            → After recovery_timeout seconds: transition to HALF_OPEN

        HALF_OPEN (testing recovery)
            → On success: transition to CLOSED (reset failure_count)
            → On failure: transition back to OPEN (reset timer)

    Thread Safety:
        Plain counters; safe within a single async worker process only.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Check if a request is allowed through.

        Raises:
            CircuitBreakerOpenError if OPEN and the recovery timeout hasn't elapsed.
        """
        if self.state == self.CLOSED:
            return True

        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed >= self.recovery_timeout:
                logger.info(
                    "Circuit breaker transitioning to HALF_OPEN after %.1fs",
                    elapsed,
                )
                self.state = self.HALF_OPEN
                return True
            remaining = max(int(self.recovery_timeout - elapsed), 1)
            raise CircuitBreakerOpenError(recovery_time=remaining)

        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Service
# ══════════════════════════════════════════════════════════════════════════

class GeminiService(LLMService):
    """
    Gemini-backed SQL assistant.

    Error Handling Chain:
        model call fails → tenacity retries (retry_max_attempts with backoff)
        → retries exhausted → next model in gemini_models
        → every model failed → record circuit breaker failure, LLMServiceError
        → threshold reached → future calls rejected instantly until recovery
    """

    PROMPTS: Dict[str, str] = {
        EXPLAIN: "Explain this SQL query in plain, concise English:\n\n{query}",
        FIX: (
            "Fix any syntax errors in this SQL query and return ONLY the corrected "
            "SQL code. Do not include any explanation or markdown formatting:\n\n{query}"
        ),
        GENERATE: (
            "Generate a valid SQL query based on this description. Return ONLY the "
            "SQL code. Do not include any explanation or markdown formatting:\n\n{text}"
        ),
    }

    def __init__(self):
        self.configured = bool(
            settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here"
        )
        if self.configured:
            genai.configure(api_key=settings.gemini_api_key.strip())

        self.model_names: List[str] = settings.gemini_models_list
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

        logger.info(
            "GeminiService initialized with models=%s, "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            ",".join(self.model_names),
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    def build_prompt(
        self,
        action: str,
        text: Optional[str] = None,
        query: Optional[str] = None,
    ) -> str:
        """
        Raises:
            ValidationError: Unknown action, or its required input is blank.
        """
        if action not in ACTIONS:
            raise ValidationError(
                message=f"Unknown AI action '{action}'. Must be one of: {', '.join(ACTIONS)}",
                field="action",
            )
        if action == GENERATE:
            if not (text or "").strip():
                raise ValidationError(message="A description is required to generate SQL.", field="text")
            return self.PROMPTS[action].format(text=text.strip())

        if not (query or "").strip():
            raise ValidationError(message=f"A SQL query is required to {action}.", field="query")
        return self.PROMPTS[action].format(query=query.strip())

    async def assist(
        self,
        action: str,
        text: Optional[str] = None,
        query: Optional[str] = None,
    ) -> str:
        """
        Flow:
            1. Validate input and build the prompt (no quota spent on bad input)
            2. Check circuit breaker → may raise CircuitBreakerOpenError
            3. Try each model with retries; first non-empty answer wins
            4. Record success/failure in circuit breaker
            5. Return the answer with code fences stripped
        """
        prompt = self.build_prompt(action, text=text, query=query)

        if not self.configured:
            raise LLMServiceError(
                message="AI assistant is not configured on this server.",
                context={"reason": "GEMINI_API_KEY missing"},
            )

        request_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()
        logger.info("[%s] AI %s request (%d prompt chars)", request_id, action, len(prompt))

        failures: List[str] = []
        for model_name in self.model_names:
            try:
                answer = await self._call_gemini_with_retry(model_name, prompt, request_id)
            except Exception as e:
                failures.append(f"{model_name}: {type(e).__name__}")
                logger.warning("[%s] Model %s gave up: %s", request_id, model_name, e)
                continue

            if answer:
                self.circuit_breaker.record_success()
                return strip_code_fences(answer)
            failures.append(f"{model_name}: empty answer")

        self.circuit_breaker.record_failure()
        logger.error("[%s] All Gemini models failed: %s", request_id, "; ".join(failures))
        raise LLMServiceError(
            message="The AI assistant could not answer. Please try again later.",
            retry_after=self.circuit_breaker.recovery_timeout,
            context={"request_id": request_id, "failures": failures},
        )

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ) + wait_random(0, 1),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call_gemini_with_retry(self, model_name: str, prompt: str, request_id: str) -> str:
        """
        One model, retried by tenacity. Kept apart from assist() so the
        circuit breaker check and model fallback are not retried themselves.
        """
        start_time = time.time()
        try:
            model = genai.GenerativeModel(model_name)
            response = await model.generate_content_async(
                prompt,
                request_options={"timeout": settings.gemini_timeout},
            )
            answer = (response.text or "").strip()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "[%s] Gemini %s call failed after %.0fms: %s",
                request_id,
                model_name,
                duration_ms,
                str(e),
            )
            raise

        logger.info(
            "[%s] Gemini %s answered in %.0fms (%d chars)",
            request_id,
            model_name,
            (time.time() - start_time) * 1000,
            len(answer),
        )
        return answer

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify key and connectivity."""
        if not self.configured:
            return False
        try:
            models = genai.list_models()
            available = {m.name for m in models}
            missing = [n for n in self.model_names if f"models/{n}" not in available]
            if missing:
                logger.warning("Configured Gemini models not listed: %s", ",".join(missing))
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# Singleton: the circuit breaker state must be shared across requests
gemini_service = GeminiService()
