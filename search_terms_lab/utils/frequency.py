# utils/frequency.py
import logging
from typing import Iterable, Optional, Sequence, Tuple

import pandas as pd

from search_terms_lab.models import StemGroup

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["stem", "display_term", "total_count"]


# ------------------------------------------------------------
# Exclusion
# ------------------------------------------------------------

def exclude_stems(groups: Iterable[StemGroup], excluded) -> Tuple[Tuple[StemGroup, ...], Tuple[StemGroup, ...]]:
    """
    Drop whole groups whose stem is in `excluded`.

    Returns (kept, removed). Counts of removed groups are not
    redistributed.
    """
    excluded = set(excluded or ())
    kept, removed = [], []
    for g in groups:
        (removed if g.stem in excluded else kept).append(g)
    if removed:
        logger.info("Excluded %d stem(s): %s", len(removed),
                    ", ".join(g.stem for g in removed))
    return tuple(kept), tuple(removed)


# ------------------------------------------------------------
# Ranking
# ------------------------------------------------------------

def rank_groups(groups: Iterable[StemGroup]) -> Tuple[StemGroup, ...]:
    return tuple(sorted(groups, key=lambda g: (-g.total_count, g.first_index)))


def build_frequency_table(
    groups: Iterable[StemGroup],
    *,
    min_frequency: int = 1,
    top_n: Optional[int] = None,
) -> Tuple[StemGroup, ...]:
    """
    Ranked term table for the word cloud / bar chart.

    Parameters
    ----------
    groups : iterable[StemGroup]
        Post-exclusion groups
    min_frequency : int
        Groups with a smaller total_count are left out
    top_n : int, optional
        Keep only the first N rows; None keeps everything

    Returns
    -------
    tuple[StemGroup]
        Sorted by total_count descending, ties by first appearance
    """
    ranked = tuple(g for g in rank_groups(groups) if g.total_count >= min_frequency)
    if top_n is not None:
        ranked = ranked[:top_n]
    return ranked


def question_view(table: Sequence[StemGroup], prefixes) -> Tuple[StemGroup, ...]:
    """Rows whose display term starts with an interrogative prefix."""
    prefixes = tuple(p.lower() for p in prefixes)
    if not prefixes:
        return ()
    return tuple(g for g in table if g.display_term.startswith(prefixes))


def table_to_frame(table: Sequence[StemGroup]) -> pd.DataFrame:
    return pd.DataFrame(
        [(g.stem, g.display_term, g.total_count) for g in table],
        columns=TABLE_COLUMNS,
    )
