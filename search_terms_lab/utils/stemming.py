# utils/stemming.py
import logging
from typing import Callable, Iterable, Tuple

from nltk.stem import SnowballStemmer

from search_terms_lab.errors import ConfigError
from search_terms_lab.models import StemGroup, TermCount
from search_terms_lab.utils.nltk_resources import snowball_languages

logger = logging.getLogger(__name__)


def _identity(word):
    return word


def get_stemmer(config) -> Callable[[str], str]:
    """
    Stemming function for the configured language.

    "none" gives the identity function, which keeps surface forms as
    their own stems.
    """
    if config.stemmer == "none":
        return _identity

    language = config.language.lower()
    if language not in snowball_languages():
        raise ConfigError(
            f"no Snowball stemmer for language {config.language!r}; "
            f"choose one of {', '.join(snowball_languages())}"
        )
    return SnowballStemmer(language).stem


def consolidate(terms: Iterable[TermCount], stem_fn) -> Tuple[StemGroup, ...]:
    """
    Group terms by stem and aggregate their counts.

    Parameters
    ----------
    terms : iterable[TermCount]
        Normalizer output, in input order
    stem_fn : callable
        Maps a surface form to its stem

    Returns
    -------
    tuple[StemGroup]
        One group per distinct stem, ordered by the stem's first
        appearance. The display term is the surface form with the largest
        summed count; among equal counts the one seen first wins.
    """
    groups = {}
    stem_cache = {}

    for idx, term in enumerate(terms):
        stem = stem_cache.get(term.surface_form)
        if stem is None:
            stem = stem_fn(term.surface_form)
            stem_cache[term.surface_form] = stem

        group = groups.get(stem)
        if group is None:
            group = {"first": idx, "total": 0, "forms": {}}
            groups[stem] = group
        group["total"] += term.count

        form = group["forms"].get(term.surface_form)
        if form is None:
            group["forms"][term.surface_form] = [term.count, idx]
        else:
            form[0] += term.count

    result = []
    for stem, group in groups.items():
        ranked = sorted(
            group["forms"].items(),
            key=lambda kv: (-kv[1][0], kv[1][1]),
        )
        result.append(StemGroup(
            stem=stem,
            display_term=ranked[0][0],
            total_count=group["total"],
            first_index=group["first"],
        ))

    logger.info("Consolidated %d distinct surface forms into %d stems",
                len(stem_cache), len(result))
    return tuple(result)
