"""
SmartQuery Backend: Abstract LLM Service Interface
==================================================

What:  Contract for the AI SQL assistant providers.
How:   Concrete implementations inherit from LLMService and implement
       assist() and health_check().
Who:   Called by the /api/ai/{action} route handler.

The assistant is a stateless pass-through: it reads nothing from and writes
nothing to the query, history or share stores.
"""

from abc import ABC, abstractmethod
from typing import Optional

# Supported assistant actions
EXPLAIN = "explain"
FIX = "fix"
GENERATE = "generate"
ACTIONS = (EXPLAIN, FIX, GENERATE)


class LLMService(ABC):
    """
    Abstract interface for AI-powered SQL help.

    Contract:
        - assist() returns plain text (SQL or prose) with Markdown code
          fences already removed
        - Implementations handle their own retry logic and error translation
        - Provider errors are wrapped in LLMServiceError
    """

    @abstractmethod
    async def assist(
        self,
        action: str,
        text: Optional[str] = None,
        query: Optional[str] = None,
    ) -> str:
        """
        Run one assistant action.

        Args:
            action: "explain" or "fix" (read `query`), or "generate" (reads `text`)
            text:   Plain-language description of the wanted query
            query:  SQL to explain or fix

        Raises:
            ValidationError: Unknown action, or the input it needs is blank.
            LLMServiceError: The provider failed after all retries.
            CircuitBreakerOpenError: Too many recent consecutive failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability test; True when the provider answers."""
        ...
