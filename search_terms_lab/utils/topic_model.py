
# Topic assignment schema (stable API)
# {
#   "term": str,          # display term
#   "topic_id": int,      # argmax topic, lowest id on ties
#   "affinity": float,    # weight share of that topic for the term
#   "weight": float,      # topic-term probability (beta)
#   "count": int,
# }
#
# The whole corpus is modelled as ONE aggregate document. The per-document
# topic mixture (theta) therefore carries no information and is never read;
# only the topic-term weights are used downstream.

import logging
from dataclasses import dataclass
from typing import Dict, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy import sparse
from sklearn.decomposition import LatentDirichletAllocation

from search_terms_lab.errors import (
    ConfigError,
    EmptyVocabularyError,
    InsufficientVocabularyError,
    TopicModelError,
)
from search_terms_lab.models import StemGroup, TopicAssignment
from search_terms_lab.utils.frequency import rank_groups

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = ["topic_id", "term", "stem", "count", "affinity", "weight"]


# ------------------------------------------------------------
# Document-term matrix
# ------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class DocumentTermMatrix:
    """Single-document term counts; zero-count terms are not stored."""
    vocabulary: Tuple[str, ...]
    stems: Tuple[str, ...]
    matrix: sparse.csr_matrix

    @property
    def n_terms(self):
        return len(self.vocabulary)

    @property
    def counts(self):
        return np.asarray(self.matrix.toarray()).ravel()

    def as_dict(self) -> Dict[str, int]:
        return {t: int(c) for t, c in zip(self.vocabulary, self.counts)}


def build_document_term_matrix(groups: Sequence[StemGroup], min_frequency=1) -> DocumentTermMatrix:
    """
    Cast post-exclusion groups into a 1 x V sparse count row.

    Parameters
    ----------
    groups : sequence[StemGroup]
        Post-exclusion groups
    min_frequency : int
        Terms below this total count are left out; zero counts always are

    Returns
    -------
    DocumentTermMatrix
        Columns follow the ranked table order
    """
    threshold = max(1, min_frequency)
    kept = [g for g in rank_groups(groups) if g.total_count >= threshold]

    data = np.array([g.total_count for g in kept], dtype=np.int64)
    cols = np.arange(len(kept))
    rows = np.zeros(len(kept), dtype=np.int64)
    matrix = sparse.csr_matrix((data, (rows, cols)), shape=(1, len(kept)))

    logger.debug("Document-term matrix: 1 x %d, %d total occurrences",
                 len(kept), int(data.sum()))
    return DocumentTermMatrix(
        vocabulary=tuple(g.display_term for g in kept),
        stems=tuple(g.stem for g in kept),
        matrix=matrix,
    )


# ------------------------------------------------------------
# Topic models
# ------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class TopicTermWeights:
    """K x V topic-term probabilities; each row sums to 1."""
    weights: np.ndarray
    vocabulary: Tuple[str, ...]

    @property
    def n_topics(self):
        return self.weights.shape[0]


def check_vocabulary(dtm: DocumentTermMatrix, k: int, stage="topic_model"):
    if k < 1:
        raise ConfigError(f"number of topics must be >= 1, got {k}")
    if dtm.n_terms == 0:
        raise EmptyVocabularyError(stage=stage)
    if k > dtm.n_terms:
        raise InsufficientVocabularyError(dtm.n_terms, k, stage=stage)


def _normalize_rows(weights, k, n_terms, model="base"):
    """
    Validate raw model output and scale each topic row to sum to 1.

    Raises
    ------
    TopicModelError
        Wrong shape, negative or non-finite values, or an all-zero topic row
    """
    weights = np.asarray(weights, dtype=float)
    if weights.shape != (k, n_terms):
        raise TopicModelError(
            f"expected weights of shape ({k}, {n_terms}), got {weights.shape}", model=model
        )
    if not np.all(np.isfinite(weights)):
        raise TopicModelError("weights contain NaN or infinite values", model=model)
    if np.any(weights < 0):
        raise TopicModelError("weights must be non-negative", model=model)
    row_sums = weights.sum(axis=1, keepdims=True)
    empty = np.flatnonzero(row_sums.ravel() == 0)
    if empty.size:
        raise TopicModelError(f"topic(s) {empty.tolist()} have zero total weight", model=model)
    return weights / row_sums


class TopicModel:
    """
    Interface: fit(dtm, k, seed) -> TopicTermWeights.

    Subclasses implement _fit and return an unnormalised K x V array.
    """

    name = "base"

    def fit(self, dtm: DocumentTermMatrix, k: int, seed: int) -> TopicTermWeights:
        check_vocabulary(dtm, k)
        raw = self._fit(dtm, k, seed)
        weights = _normalize_rows(raw, k, dtm.n_terms, model=self.name)
        logger.info("Fitted %s topic model: %d topics over %d terms",
                    self.name, k, dtm.n_terms)
        return TopicTermWeights(weights=weights, vocabulary=dtm.vocabulary)

    def _fit(self, dtm, k, seed):
        raise NotImplementedError


class VariationalLDA(TopicModel):
    """scikit-learn's batch variational Bayes LDA."""

    name = "variational"

    def __init__(self, **lda_kwargs):
        self.lda_kwargs = lda_kwargs

    def _fit(self, dtm, k, seed):
        lda = LatentDirichletAllocation(
            n_components=k,
            random_state=seed,
            learning_method="batch",
            **self.lda_kwargs,
        )
        lda.fit(dtm.matrix)
        return lda.components_


class GibbsLDA(TopicModel):
    """
    Blocked collapsed Gibbs sampler.

    All occurrences of a term are resampled together as one multinomial
    draw over topics, which keeps the cost proportional to V * K per sweep
    rather than to the (possibly very large) total search count.
    """

    name = "gibbs"

    def __init__(self, iterations=200, alpha=None, eta=None):
        self.iterations = iterations
        self.alpha = alpha
        self.eta = eta

    def _fit(self, dtm, k, seed):
        rng = np.random.default_rng(seed)
        counts = dtm.counts.astype(np.int64)
        n_terms = counts.shape[0]
        alpha = self.alpha if self.alpha is not None else 1.0 / k
        eta = self.eta if self.eta is not None else 1.0 / k

        alloc = np.vstack([rng.multinomial(n, np.full(k, 1.0 / k)) for n in counts])
        topic_totals = alloc.sum(axis=0)

        for _ in range(self.iterations):
            for t in range(n_terms):
                topic_totals -= alloc[t]
                # the term's own topic-word count is zero once removed
                p = (topic_totals + alpha) * eta / (topic_totals + n_terms * eta)
                alloc[t] = rng.multinomial(counts[t], p / p.sum())
                topic_totals += alloc[t]

        return (alloc.T + eta).astype(float)


def get_topic_engine(config) -> TopicModel:
    if config.topic_engine == "gibbs":
        return GibbsLDA(iterations=config.gibbs_iterations)
    return VariationalLDA()


# ------------------------------------------------------------
# Assignment
# ------------------------------------------------------------

def assign_topics(
    topic_weights: TopicTermWeights,
    dtm: DocumentTermMatrix,
    groups: Sequence[StemGroup],
    join_on="display_term",
) -> Tuple[TopicAssignment, ...]:
    """
    Hard-assign every term to its highest-weight topic.

    Counts are joined back from the groups by display term (default) or by
    stem. A term missing from the groups gets count 0. A term with zero
    weight in every topic goes to topic 0 with affinity 0.0.
    """
    w = topic_weights.weights
    best = np.argmax(w, axis=0)  # first max wins, i.e. lowest topic id
    column_totals = w.sum(axis=0)

    if join_on == "stem":
        counts = {g.stem: g.total_count for g in groups}
        keys = dtm.stems
    else:
        counts = {g.display_term: g.total_count for g in groups}
        keys = dtm.vocabulary

    out = []
    for j, term in enumerate(topic_weights.vocabulary):
        k = int(best[j])
        weight = float(w[k, j])
        total = float(column_totals[j])
        out.append(TopicAssignment(
            term=term,
            stem=dtm.stems[j],
            topic_id=k,
            affinity=weight / total if total > 0 else 0.0,
            weight=weight,
            count=counts.get(keys[j], 0),
        ))
    return tuple(out)


def topic_views(assignments, n_topics, min_affinity=0.001):
    """
    Per-topic term lists for per-topic word clouds.

    Returns
    -------
    dict
        { topic_id : tuple[TopicAssignment] } for every topic id, ordered
        by count then weight, keeping weights strictly above min_affinity
    """
    views = {k: [] for k in range(n_topics)}
    for a in assignments:
        if a.weight > min_affinity:
            views[a.topic_id].append(a)
    return {
        k: tuple(sorted(v, key=lambda a: (-a.count, -a.weight, a.term)))
        for k, v in views.items()
    }


def top_terms_per_topic(topic_weights: TopicTermWeights, top_n=10):
    """
    Highest-weight terms of each topic, regardless of hard assignment.

    Returns
    -------
    dict
        { topic_id : [term1, term2, ...] }
    """
    vocab = np.array(topic_weights.vocabulary)
    topic_words = {}
    for topic_id, weights in enumerate(topic_weights.weights):
        # stable sort keeps table order among equal weights
        top_idx = np.argsort(-weights, kind="stable")[:top_n]
        topic_words[topic_id] = vocab[top_idx].tolist()
    return topic_words


def summarize_topics(assignments):
    """Share of the total search count that lands in each topic."""
    if not assignments:
        return {}
    totals = {}
    for a in assignments:
        totals[a.topic_id] = totals.get(a.topic_id, 0) + a.count
    grand = sum(totals.values())
    if grand == 0:
        return {k: 0.0 for k in totals}
    return {k: v / grand for k, v in sorted(totals.items())}


def assignments_to_frame(assignments) -> pd.DataFrame:
    return pd.DataFrame(
        [(a.topic_id, a.term, a.stem, a.count, a.affinity, a.weight) for a in assignments],
        columns=ASSIGNMENT_COLUMNS,
    )
