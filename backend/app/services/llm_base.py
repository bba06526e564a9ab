"""
Caesar Backend — Abstract Generative Service Interface
========================================================

What:  Abstract base class defining the contract for the text/vision model
       the handlers talk to.
Why:   Handlers only need "prompt (+ optional image) in, text out". Keeping
       that behind an interface lets tests plug in a canned implementation and
       keeps the Gemini SDK confined to one module.
How:   Concrete implementations inherit from GenerativeService and implement
       generate_text().
Who:   Called by the analyze, suggestFolder and search handlers.
"""

from abc import ABC, abstractmethod
from typing import Optional

from app.schemas.chat import InlineImage


class GenerativeService(ABC):
    """
    Abstract interface for one configured generative model.

    Contract:
        - generate_text() returns the text of the first candidate, or None when
          the model produced no candidate (blocked, empty, etc.)
        - Transport and SDK failures are raised as GenerativeServiceError
        - No retries: one call, one answer

    Implementations:
        - GeminiService: Google Gemini via google-generativeai (default)
    """

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        image: Optional[InlineImage] = None,
    ) -> Optional[str]:
        """
        Send a prompt, optionally followed by one inline image, to the model.

        Args:
            prompt: Instruction text (always the first content part).
            image:  Decoded image bytes plus media type, or None for text-only.

        Returns:
            The first candidate's first text part, or None if there is none.

        Raises:
            GenerativeServiceError: The call failed before producing a response.
        """
        ...
