# utils/nltk_resources.py
import logging
from functools import lru_cache

import nltk
from nltk.data import find
from nltk.stem import SnowballStemmer

from search_terms_lab.errors import ConfigError

logger = logging.getLogger(__name__)


def _ensure_resource(resource_name, download_name=None):
    """Make sure an NLTK resource is present before it is used."""
    try:
        find(resource_name)
    except LookupError:
        name = download_name or resource_name.split("/")[-1]
        logger.info("Downloading NLTK resource %s", name)
        nltk.download(name, quiet=True)


@lru_cache(maxsize=None)
def language_stopwords(language):
    """
    Stopword list shipped with NLTK for `language`.

    Returns
    -------
    frozenset[str]
        Lowercased stopwords
    """
    _ensure_resource("corpora/stopwords", "stopwords")
    from nltk.corpus import stopwords

    try:
        words = stopwords.words(language)
    except (OSError, LookupError) as e:
        raise ConfigError(f"NLTK has no stopword list for language {language!r}") from e
    return frozenset(w.lower() for w in words)


def snowball_languages():
    return tuple(SnowballStemmer.languages)
