"""Policy definitions for candidate scoring.

Scoring is kept separate from the engine so the soft preferences can be
tested and tuned on their own. Hard constraints (qualification, blocked
preferences, primary duty conflicts) are never part of a policy: the engine
eliminates those candidates before any score is computed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreBreakdown:
    """Components of a candidate score."""

    preference: int
    scarcity: int
    weekly_headroom: int
    fairness: int

    @property
    def total(self) -> int:
        return self.preference + self.scarcity + self.weekly_headroom + self.fairness


class CandidateScoringPolicy(ABC):
    """Abstract base class for candidate scoring policies."""

    @abstractmethod
    def score(
        self,
        preferred: bool,
        qualified_count: int,
        cap: int,
        weekly_count: int,
        total_count: int,
    ) -> ScoreBreakdown:
        """Score a candidate that already passed every hard filter.

        Args:
            preferred: Worker prefers this task (or the whole day).
            qualified_count: Number of workers qualified for the task.
            cap: Active weekly cap.
            weekly_count: Worker's assignments in the current week so far.
            total_count: Worker's assignments in this run so far.

        Returns:
            Score breakdown. Higher totals win.
        """
        pass


class DefaultScoringPolicy(CandidateScoringPolicy):
    """Default additive scoring.

    score = preferred_bonus * preferred
          + max(0, scarcity_threshold + 1 - qualified_count)
          + (cap - weekly_count)
          + (fairness_ceiling - min(fairness_ceiling, total_count))
    """

    def __init__(
        self,
        scarcity_threshold: int = 3,
        preferred_bonus: int = 2,
        fairness_ceiling: int = 5,
    ):
        if scarcity_threshold < 0:
            raise ValueError("scarcity_threshold must be non-negative")
        if fairness_ceiling < 0:
            raise ValueError("fairness_ceiling must be non-negative")
        self.scarcity_threshold = scarcity_threshold
        self.preferred_bonus = preferred_bonus
        self.fairness_ceiling = fairness_ceiling

    def scarcity_bonus(self, qualified_count: int) -> int:
        """Bonus for tasks few workers can do."""
        return max(0, self.scarcity_threshold + 1 - qualified_count)

    def score(
        self,
        preferred: bool,
        qualified_count: int,
        cap: int,
        weekly_count: int,
        total_count: int,
    ) -> ScoreBreakdown:
        return ScoreBreakdown(
            preference=self.preferred_bonus if preferred else 0,
            scarcity=self.scarcity_bonus(qualified_count),
            weekly_headroom=cap - weekly_count,
            fairness=self.fairness_ceiling - min(self.fairness_ceiling, total_count),
        )
