"""
SmartQuery Backend: Gemini Service Unit Tests (Mocked)
======================================================

What we test:
    ✅ Circuit breaker state machine (closed → open → half_open → closed)
    ✅ Prompts per action, and rejection of unknown actions or blank input
    ✅ Answers come back with Markdown code fences stripped
    ✅ Falls back to the next model when one fails or answers empty
    ✅ All models failing → LLMServiceError and a recorded breaker failure
    ✅ Open breaker and missing API key fail without calling Gemini
    ❌ Real API calls (use integration tests for that)
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from smartquery.exceptions import CircuitBreakerOpenError, LLMServiceError, ValidationError
from smartquery.services.gemini_service import CircuitBreaker, GeminiService, strip_code_fences


def _response(text):
    response = MagicMock()
    response.text = text
    return response


def _model_returning(*answers):
    """A GenerativeModel stub whose generate_content_async yields answers in turn."""
    model = MagicMock()
    model.generate_content_async = AsyncMock(side_effect=list(answers))
    return model


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_opens_at_threshold_and_rejects(self):
        cb = CircuitBreaker(failure_threshold=3, recovery_timeout=60)
        for _ in range(3):
            cb.record_failure()
        assert cb.state == "open"

        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)

        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        cb.can_execute()

        cb.record_failure()
        assert cb.state == "open"

    def test_success_closes_and_resets(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        cb.can_execute()

        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0


class TestStripCodeFences:

    def test_sql_fence(self):
        assert strip_code_fences("```sql\nSELECT 1;\n```") == "SELECT 1;"

    def test_bare_fence(self):
        assert strip_code_fences("```\nSELECT 1;\n```") == "SELECT 1;"

    def test_plain_text_untouched(self):
        assert strip_code_fences("  This query counts rows.  ") == "This query counts rows."

    def test_inner_fence_untouched(self):
        text = "Use this:\n```sql\nSELECT 1;\n```"
        assert strip_code_fences(text) == text


class TestBuildPrompt:

    def setup_method(self):
        with patch("smartquery.services.gemini_service.genai"):
            self.service = GeminiService()

    def test_explain_includes_query(self):
        prompt = self.service.build_prompt("explain", query="SELECT * FROM t")
        assert prompt.startswith("Explain this SQL query")
        assert prompt.endswith("SELECT * FROM t")

    def test_fix_asks_for_sql_only(self):
        prompt = self.service.build_prompt("fix", query="SELEC * FROM t")
        assert "return ONLY the corrected SQL" in prompt
        assert "SELEC * FROM t" in prompt

    def test_generate_reads_text_not_query(self):
        prompt = self.service.build_prompt("generate", text="all users", query="ignored")
        assert "all users" in prompt
        assert "ignored" not in prompt

    def test_unknown_action(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.build_prompt("optimize", query="SELECT 1")
        assert exc_info.value.field == "action"

    @pytest.mark.parametrize("action,kwargs,field", [
        ("explain", {"query": "  "}, "query"),
        ("fix", {}, "query"),
        ("generate", {"query": "SELECT 1"}, "text"),
    ])
    def test_missing_input(self, action, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            self.service.build_prompt(action, **kwargs)
        assert exc_info.value.field == field


class TestGeminiServiceMocked:

    @pytest.mark.asyncio
    async def test_assist_returns_unfenced_answer(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            model = _model_returning(_response("```sql\nSELECT id FROM users;\n```"))
            mock_genai.GenerativeModel.return_value = model

            service = GeminiService()
            result = await service.assist("generate", text="ids of all users")

        assert result == "SELECT id FROM users;"
        assert service.circuit_breaker.state == "closed"

    @pytest.mark.asyncio
    async def test_falls_back_to_next_model(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            failing = _model_returning(RuntimeError("quota exceeded"))
            working = _model_returning(_response("It selects one row."))
            mock_genai.GenerativeModel.side_effect = lambda name: {
                "gemini-test-flash": failing,
                "gemini-test-pro": working,
            }[name]

            service = GeminiService()
            result = await service.assist("explain", query="SELECT 1")

        assert result == "It selects one row."
        failing.generate_content_async.assert_awaited()
        working.generate_content_async.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_answer_falls_through(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            mock_genai.GenerativeModel.side_effect = [
                _model_returning(_response("")),
                _model_returning(_response("SELECT 1;")),
            ]

            service = GeminiService()
            assert await service.assist("fix", query="SELEC 1") == "SELECT 1;"

    @pytest.mark.asyncio
    async def test_all_models_failing_raises_and_counts(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            mock_genai.GenerativeModel.return_value = _model_returning(
                RuntimeError("boom"), RuntimeError("boom"), RuntimeError("boom"),
            )

            service = GeminiService()
            with pytest.raises(LLMServiceError):
                await service.assist("explain", query="SELECT 1")

        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_skips_gemini(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            service = GeminiService()
            for _ in range(service.circuit_breaker.failure_threshold):
                service.circuit_breaker.record_failure()

            with pytest.raises(CircuitBreakerOpenError):
                await service.assist("explain", query="SELECT 1")
            mock_genai.GenerativeModel.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_input_spends_no_quota(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            service = GeminiService()
            with pytest.raises(ValidationError):
                await service.assist("generate", text="")
            mock_genai.GenerativeModel.assert_not_called()

    @pytest.mark.asyncio
    async def test_unconfigured_service(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai, \
                patch("smartquery.services.gemini_service.settings") as mock_settings:
            mock_settings.gemini_api_key = ""
            mock_settings.gemini_models_list = ["gemini-test-flash"]
            mock_settings.cb_failure_threshold = 5
            mock_settings.cb_recovery_timeout = 60

            service = GeminiService()
            assert service.configured is False
            with pytest.raises(LLMServiceError):
                await service.assist("explain", query="SELECT 1")
            assert await service.health_check() is False
            mock_genai.configure.assert_not_called()

    @pytest.mark.asyncio
    async def test_health_check_lists_models(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            listed = MagicMock()
            listed.name = "models/gemini-test-flash"
            mock_genai.list_models.return_value = [listed]

            service = GeminiService()
            assert await service.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_swallows_errors(self):
        with patch("smartquery.services.gemini_service.genai") as mock_genai:
            mock_genai.list_models.side_effect = RuntimeError("no network")

            service = GeminiService()
            assert await service.health_check() is False
