"""
Rule-based client prioritization.

A client's priority is computed in three stages, each one a pure function
over a handful of survey answers:

1. ``calculate_mandatory_priority``: baseline from active deals and
   interaction frequency.
2. ``adjust_priority_with_advanced``: who initiated contact and whether a
   proposal is pending.
3. ``adjust_priority_with_external``: signals derived from an analysed image.

Answer fields are collections so that multi-select answers keep working;
the forms currently send one value per question.
"""

from collections.abc import Collection
from dataclasses import dataclass
from typing import Literal

PriorityLevel = Literal["low", "medium", "high"]
Sentiment = Literal["low", "mid", "high"]

PRIORITY_LEVELS: tuple[str, ...] = ("low", "medium", "high")
PRIORITY_ORDER = {"low": 1, "medium": 2, "high": 3}

ACTIVE_DEALS_OPTIONS = ("1", "2", "3+")
FREQUENCY_OPTIONS = ("1-2times", "3-5times", "6-9times", "10+times")
WHO_INITIATED_OPTIONS = ("client", "you")
PENDING_PROPOSAL_OPTIONS = ("yes", "no")
SENTIMENT_OPTIONS = ("low", "mid", "high")


@dataclass(frozen=True)
class PrioritizationInput:
    active_deals: Collection[str]
    interaction_frequency: Collection[str]
    who_initiated: Collection[str] | None = None
    pending_proposal: Collection[str] | None = None
    pdf_priority: PriorityLevel | None = None
    pdf_keywords_count: int | None = None
    pdf_sentiment: Sentiment | None = None


def priority_rank(level: str) -> int:
    return PRIORITY_ORDER[level]


def promote(level: PriorityLevel) -> PriorityLevel:
    """One level up, capped at high."""
    idx = min(len(PRIORITY_LEVELS) - 1, PRIORITY_LEVELS.index(level) + 1)
    return PRIORITY_LEVELS[idx]


def demote(level: PriorityLevel) -> PriorityLevel:
    """One level down, floored at low."""
    idx = max(0, PRIORITY_LEVELS.index(level) - 1)
    return PRIORITY_LEVELS[idx]


def max_priority(a: PriorityLevel, b: PriorityLevel) -> PriorityLevel:
    return b if priority_rank(b) > priority_rank(a) else a


def calculate_mandatory_priority(
    active_deals: Collection[str],
    interaction_frequency: Collection[str],
) -> PriorityLevel:
    """
    Baseline priority from the two mandatory questions.

    Rules are checked in order and the first match wins:
        high:   2 or 3+ active deals and 6-9 or 10+ interactions
        medium: 1 active deal and 3-5 interactions
        low:    1-2 interactions (whatever the deal count)
        medium: anything else

    Note that 3+ deals with 1-2 interactions lands on "low".
    """
    has_high_deals = "2" in active_deals or "3+" in active_deals
    has_high_frequency = "6-9times" in interaction_frequency or "10+times" in interaction_frequency
    if has_high_deals and has_high_frequency:
        return "high"

    if "1" in active_deals and "3-5times" in interaction_frequency:
        return "medium"

    if "1-2times" in interaction_frequency:
        return "low"

    return "medium"


def adjust_priority_with_advanced(
    priority: PriorityLevel,
    who_initiated: Collection[str] | None = None,
    pending_proposal: Collection[str] | None = None,
) -> PriorityLevel:
    """
    Promote when the client reached out and a proposal is pending; demote when
    we reached out and nothing is pending.

    Both checks run one after the other on the running value.
    """
    who_initiated = who_initiated or ()
    pending_proposal = pending_proposal or ()
    adjusted = priority

    if "client" in who_initiated and "yes" in pending_proposal:
        adjusted = promote(adjusted)

    if "you" in who_initiated and "no" in pending_proposal:
        adjusted = demote(adjusted)

    return adjusted


def adjust_priority_with_external(
    priority: PriorityLevel,
    pdf_priority: PriorityLevel | None = None,
    pdf_keywords_count: int | None = None,
    pdf_sentiment: Sentiment | None = None,
) -> PriorityLevel:
    """
    Fold in the signals from an analysed image.

    The analysed priority can only raise the current one (max of both). The
    sentiment then moves it one level: high promotes, low demotes, mid keeps.
    ``pdf_keywords_count`` is accepted but does not weigh in yet.
    """
    if pdf_priority is None and pdf_keywords_count is None and pdf_sentiment is None:
        return priority

    adjusted = priority
    if pdf_priority is not None:
        adjusted = max_priority(adjusted, pdf_priority)

    if pdf_sentiment == "high":
        adjusted = promote(adjusted)
    elif pdf_sentiment == "low":
        adjusted = demote(adjusted)

    return adjusted


def calculate_final_priority(data: PrioritizationInput) -> PriorityLevel:
    priority = calculate_mandatory_priority(data.active_deals, data.interaction_frequency)
    priority = adjust_priority_with_advanced(priority, data.who_initiated, data.pending_proposal)
    priority = adjust_priority_with_external(
        priority,
        data.pdf_priority,
        data.pdf_keywords_count,
        data.pdf_sentiment,
    )
    return priority
