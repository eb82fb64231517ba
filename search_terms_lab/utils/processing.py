# utils/processing.py
import logging
import math
import re
import unicodedata
from collections.abc import Mapping
from numbers import Integral
from typing import Iterable, List, Tuple

import pandas as pd

from search_terms_lab.errors import EncodingError, InputShapeError
from search_terms_lab.models import RawQueryCount, TermCount
from search_terms_lab.utils.nltk_resources import language_stopwords

logger = logging.getLogger(__name__)

# maximal runs of letters/digits; underscore counts as a separator
_token_re = re.compile(r"[^\W_]+")
_ascii_token_re = re.compile(r"[a-z0-9]+")


# -------------------------------
# INPUT LOADING / VALIDATION
# -------------------------------

def _coerce_count(value, row):
    if isinstance(value, bool):
        raise InputShapeError(f"count must be an integer, got {value!r}", row=row)
    if isinstance(value, Integral):
        count = int(value)
    elif isinstance(value, float) and math.isfinite(value) and value.is_integer():
        # pandas reads integer columns with gaps as float
        count = int(value)
    else:
        raise InputShapeError(f"count must be an integer, got {value!r}", row=row)
    if count < 0:
        raise InputShapeError(f"negative count {count}", row=row)
    return count


def _coerce_row(row, index) -> RawQueryCount:
    if isinstance(row, RawQueryCount):
        query, count = row.query, row.count
    elif isinstance(row, Mapping):
        missing = [k for k in ("query", "count") if k not in row]
        if missing:
            raise InputShapeError(f"missing field(s): {', '.join(missing)}", row=index)
        query, count = row["query"], row["count"]
    elif isinstance(row, (tuple, list)):
        if len(row) != 2:
            raise InputShapeError(
                f"expected a (query, count) pair, got {len(row)} field(s)", row=index
            )
        query, count = row
    else:
        raise InputShapeError(f"unsupported row type {type(row).__name__}", row=index)

    if not isinstance(query, str):
        raise InputShapeError(f"query must be a string, got {query!r}", row=index)
    return RawQueryCount(query=query, count=_coerce_count(count, index))


def validate_raw_queries(rows: Iterable) -> Tuple[RawQueryCount, ...]:
    """
    Check the raw (query, count) rows before anything else touches them.

    Accepts RawQueryCount objects, (query, count) pairs or mappings with
    "query" and "count" keys. Raises InputShapeError on the first bad row.
    """
    if rows is None:
        raise InputShapeError("no input rows given")
    validated = tuple(_coerce_row(row, i) for i, row in enumerate(rows))
    logger.debug("Validated %d raw query rows", len(validated))
    return validated


def load_query_counts(source, query_col="query", count_col="count") -> Tuple[RawQueryCount, ...]:
    """
    Read a tabular export of search queries.

    Parameters
    ----------
    source : str | path | file-like | pandas.DataFrame
        CSV location or an already loaded frame
    query_col, count_col : str
        Column names holding the query text and its count

    Returns
    -------
    tuple[RawQueryCount]
    """
    if isinstance(source, pd.DataFrame):
        df = source
    else:
        df = pd.read_csv(source, dtype={query_col: "string"}, keep_default_na=False)

    missing = [c for c in (query_col, count_col) if c not in df.columns]
    if missing:
        raise InputShapeError(f"missing column(s): {', '.join(missing)}")

    rows = []
    for i, (query, count) in enumerate(zip(df[query_col], df[count_col])):
        if not isinstance(query, str) and pd.isna(query):
            raise InputShapeError("missing query", row=i)
        if isinstance(count, str):
            try:
                count = int(count.strip())
            except ValueError:
                raise InputShapeError(f"count must be an integer, got {count!r}", row=i) from None
        rows.append((str(query), count))
    return validate_raw_queries(rows)


# -------------------------------
# NORMALIZER
# -------------------------------

def tokenize_query(text: str) -> List[str]:
    if not text:
        return []
    return _token_re.findall(text)


def transliterate(token: str) -> str:
    """
    Reduce a token to plain lowercase ASCII letters and digits.

    Accents are stripped via NFKD decomposition. Anything that is still
    not [a-z0-9] afterwards raises EncodingError; nothing is replaced.
    """
    decomposed = unicodedata.normalize("NFKD", token)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c)).lower()
    if not _ascii_token_re.fullmatch(stripped):
        raise EncodingError(token)
    return stripped


def resolve_stopwords(config):
    base = config.stopwords
    if base is None:
        base = language_stopwords(config.language)
    words = frozenset(base) | config.extra_stopwords
    if config.keep_question_words:
        words -= set(config.question_prefixes)
    return words


def normalize_queries(raw: Iterable[RawQueryCount], stopwords) -> Tuple[TermCount, ...]:
    """
    Split queries into terms, one TermCount per surviving token.

    Every token keeps the full count of the query it came from, so a
    two-word query searched 10 times yields two terms with count 10.
    """
    out = []
    dropped = 0
    for item in raw:
        for token in tokenize_query(item.query):
            token = token.lower()
            if token in stopwords:
                continue
            try:
                token = transliterate(token)
            except EncodingError as e:
                dropped += 1
                logger.debug("Dropping token: %s", e)
                continue
            # transliteration can turn a token into a stopword ("thé")
            if token in stopwords:
                continue
            out.append(TermCount(surface_form=token, count=item.count))

    if dropped:
        logger.info("Dropped %d token(s) without an ASCII form", dropped)
    logger.debug("Normalizer produced %d terms", len(out))
    return tuple(out)
