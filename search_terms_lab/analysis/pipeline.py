import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import pandas as pd

from search_terms_lab.config import AnalysisConfig
from search_terms_lab.errors import EmptyVocabularyError
from search_terms_lab.models import StemGroup, TermCount, TopicAssignment
from search_terms_lab.utils.frequency import (
    build_frequency_table,
    exclude_stems,
    question_view,
    table_to_frame,
)
from search_terms_lab.utils.processing import (
    normalize_queries,
    resolve_stopwords,
    validate_raw_queries,
)
from search_terms_lab.utils.stemming import consolidate, get_stemmer
from search_terms_lab.utils.topic_model import (
    DocumentTermMatrix,
    TopicModel,
    TopicTermWeights,
    assign_topics,
    assignments_to_frame,
    build_document_term_matrix,
    get_topic_engine,
    top_terms_per_topic,
    topic_views,
)

logger = logging.getLogger(__name__)

TOPICS_OK = "ok"
TOPICS_EMPTY = "empty"
TOPICS_SKIPPED = "skipped"


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    config: AnalysisConfig
    terms: Tuple[TermCount, ...]
    stem_groups: Tuple[StemGroup, ...]
    excluded_groups: Tuple[StemGroup, ...]
    frequency_table: Tuple[StemGroup, ...]
    question_table: Tuple[StemGroup, ...]
    dtm: DocumentTermMatrix
    topic_status: str = TOPICS_SKIPPED
    topic_weights: Optional[TopicTermWeights] = None
    topic_assignments: Tuple[TopicAssignment, ...] = ()
    topic_views: Dict[int, Tuple[TopicAssignment, ...]] = field(default_factory=dict)
    topic_keywords: Dict[int, list] = field(default_factory=dict)

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        """Tabular views for the presentation layer."""
        frames = {
            "frequency": table_to_frame(self.frequency_table),
            "questions": table_to_frame(self.question_table),
            "topics": assignments_to_frame(self.topic_assignments),
        }
        for k, view in self.topic_views.items():
            frames[f"topic_{k}"] = assignments_to_frame(view)
        return frames


def run_analysis(raw_rows, config: Optional[AnalysisConfig] = None,
                 topic_model: Optional[TopicModel] = None) -> AnalysisResult:
    """
    Run the full batch: validate, normalise, stem, exclude, rank, model topics.

    Parameters
    ----------
    raw_rows : iterable
        (query, count) pairs, RawQueryCount objects or mappings
    config : AnalysisConfig, optional
        Defaults to AnalysisConfig()
    topic_model : TopicModel, optional
        Overrides the engine named by config.topic_engine

    Returns
    -------
    AnalysisResult
        topic_status is "empty" when no term survives filtering, and
        "skipped" when config.run_topics is off.

    Raises
    ------
    InputShapeError
        Before any processing, for malformed rows
    InsufficientVocabularyError
        When fewer terms than config.n_topics survive
    TopicModelError
        When the topic model returns malformed weights
    """
    config = config or AnalysisConfig()

    # ------------------------------------------------------------
    # VALIDATE + NORMALISE
    # ------------------------------------------------------------
    raw = validate_raw_queries(raw_rows)
    stopwords = resolve_stopwords(config)
    terms = normalize_queries(raw, stopwords)
    logger.info("Normalised %d queries into %d terms", len(raw), len(terms))

    # ------------------------------------------------------------
    # STEM + EXCLUDE
    # ------------------------------------------------------------
    stem_fn = get_stemmer(config)
    groups = consolidate(terms, stem_fn)
    kept, removed = exclude_stems(groups, config.excluded_stems)

    # ------------------------------------------------------------
    # FREQUENCY TABLES
    # ------------------------------------------------------------
    table = build_frequency_table(
        kept, min_frequency=config.min_frequency, top_n=config.top_n
    )
    questions = question_view(table, config.question_prefixes)

    # ------------------------------------------------------------
    # TOPIC MODELLING
    # ------------------------------------------------------------
    dtm = build_document_term_matrix(kept, min_frequency=config.min_frequency)

    result = dict(
        config=config,
        terms=terms,
        stem_groups=groups,
        excluded_groups=removed,
        frequency_table=table,
        question_table=questions,
        dtm=dtm,
    )

    if not config.run_topics:
        return AnalysisResult(topic_status=TOPICS_SKIPPED, **result)

    engine = topic_model or get_topic_engine(config)
    try:
        weights = engine.fit(dtm, config.n_topics, config.seed)
    except EmptyVocabularyError as e:
        logger.warning("Skipping topic model: %s", e)
        return AnalysisResult(topic_status=TOPICS_EMPTY, **result)

    assignments = assign_topics(weights, dtm, kept, join_on=config.join_on)
    views = topic_views(assignments, config.n_topics, config.min_affinity)

    return AnalysisResult(
        topic_status=TOPICS_OK,
        topic_weights=weights,
        topic_assignments=assignments,
        topic_views=views,
        topic_keywords=top_terms_per_topic(weights),
        **result,
    )
