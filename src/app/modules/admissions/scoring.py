"""
Merit Scoring

A scorer turns an application into a numeric merit score. The merit list
engine accepts any object with a ``score(application) -> float`` method, so
schools can plug in entrance-test or interview based scoring.
"""

from typing import Protocol

from app.modules.admissions.models import AdmissionApplication

BASE_SCORE = 50.0
CATEGORY_BONUS = 5.0
PREVIOUS_SCHOOL_BONUS = 10.0


class MeritScorer(Protocol):
    def score(self, application: AdmissionApplication) -> float: ...


class PlaceholderScorer:
    """
    Default scorer used until test results are wired in.

    50 points base, +5 when a category is recorded, +10 when a previous
    school is recorded.
    """

    def score(self, application: AdmissionApplication) -> float:
        score = BASE_SCORE
        if application.category:
            score += CATEGORY_BONUS
        if application.previous_school:
            score += PREVIOUS_SCHOOL_BONUS
        return score


class PreviousPercentageScorer:
    """Rank by the percentage obtained in the previous class (0 when unknown)."""

    def score(self, application: AdmissionApplication) -> float:
        if application.previous_percentage is None:
            return 0.0
        return float(application.previous_percentage)


default_scorer: MeritScorer = PlaceholderScorer()

SCORERS: dict[str, MeritScorer] = {
    "placeholder": default_scorer,
    "previous_percentage": PreviousPercentageScorer(),
}
