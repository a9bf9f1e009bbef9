"""
Identity verification collaborator.

Face comparison happens outside this service; the core only consumes a
similarity score in the 0..1 range.
"""

from abc import ABC, abstractmethod
from typing import Optional


class IdentityVerifier(ABC):
    """Returns how similar a check-in photo is to the agent's reference."""

    @abstractmethod
    def similarity(self, agent_id: str, photo: str) -> Optional[float]:
        """
        Compare ``photo`` with the agent's reference photo.

        Args:
            agent_id: Agent whose reference photo is used
            photo: Reference to the captured photo

        Returns:
            Score between 0 and 1, or None when no comparison was possible
        """


def normalize_match_score(score: Optional[float]) -> Optional[float]:
    """Scores above 1 are percentages; bring them into 0..1."""
    if score is None:
        return None
    score = float(score)
    if score > 1:
        score = score / 100
    return max(0.0, min(score, 1.0))
