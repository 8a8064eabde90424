"""
Orchestration Contracts - Interfaces for the generation service.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from poprocessor.domains.extraction.models import SourceDocument


@runtime_checkable
class GeneratedText(Protocol):
    """Anything carrying the raw text of a generation response."""

    text: str


@runtime_checkable
class GenerationClient(Protocol):
    """
    Contract for the external generation service.

    Implementations raise only the call errors of the taxonomy
    (``TransientCallError``, ``NonTransientCallError``,
    ``QuotaExhaustedError``).
    """

    async def generate(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        response_mime_type: str = "text/plain",
        document: SourceDocument | None = None,
    ) -> GeneratedText:
        """
        Generate a response for a prompt.

        Args:
            prompt: User prompt
            system_instruction: Optional system instruction
            response_mime_type: "text/plain" or "application/json"
            document: Optional document whose bytes are attached inline

        Returns:
            Response with the generated text
        """
        ...
