from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RawQueryCount:
    query: str
    count: int


@dataclass(frozen=True, slots=True)
class TermCount:
    """One normalized token, carrying the full count of its query."""
    surface_form: str
    count: int


@dataclass(frozen=True, slots=True)
class StemGroup:
    stem: str
    display_term: str
    total_count: int
    first_index: int = 0


@dataclass(frozen=True, slots=True)
class TopicAssignment:
    """
    Hard topic assignment of one term.

    weight is the topic-term probability of the chosen topic; affinity is
    the same weight normalised across topics for this term.
    """
    term: str
    stem: str
    topic_id: int
    affinity: float
    weight: float
    count: int
