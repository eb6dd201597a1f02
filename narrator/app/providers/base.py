from abc import ABC, abstractmethod
from typing import Optional


class TextGenerator(ABC):
    """Optional text-generation collaborator.

    Components that can use generated text take a ``TextGenerator | None``;
    absence is a plain None check. ``generate`` returns None when the
    service is unavailable or fails, and never raises for upstream errors.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        """Generate text for a prompt.

        Args:
            prompt: User prompt text
            system_prompt: Optional system instruction
            max_tokens: Optional completion length cap

        Returns:
            The generated text, or None if unavailable
        """
        pass

    @abstractmethod
    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check if the service is reachable."""
        pass
