import logging
import unittest

from search_terms_lab import AnalysisConfig, configure_logging, run_analysis
from search_terms_lab.analysis.pipeline import TOPICS_EMPTY, TOPICS_OK, TOPICS_SKIPPED
from search_terms_lab.errors import ConfigError, InputShapeError, InsufficientVocabularyError
from search_terms_lab.log import LOGGER_NAME
from search_terms_lab.utils.topic_model import GibbsLDA

SCENARIO = [("red shoes", 10), ("red socks", 5), ("the shoes", 3)]

QUERIES = [
    ("red running shoes", 40),
    ("running shoes sale", 22),
    ("how to clean suede shoes", 15),
    ("wool socks", 18),
    ("red wool socks", 6),
    ("return policy", 11),
    ("returns shipping cost", 9),
    ("where is my order", 8),
    ("free shipping", 13),
    ("trail running", 5),
]


def _config(**kw):
    base = dict(stopwords={"the", "to", "is", "my"}, seed=1120)
    base.update(kw)
    return AnalysisConfig(**base)


class ScenarioTests(unittest.TestCase):
    def test_frequency_table(self):
        result = run_analysis(SCENARIO, _config(stemmer="none", run_topics=False))
        self.assertEqual(
            [(g.display_term, g.total_count) for g in result.frequency_table],
            [("red", 15), ("shoes", 13), ("socks", 5)],
        )
        self.assertEqual(result.topic_status, TOPICS_SKIPPED)

    def test_excluded_stem_never_reaches_outputs(self):
        result = run_analysis(
            SCENARIO, _config(stemmer="none", excluded_stems={"red"}, n_topics=2)
        )
        self.assertEqual(
            [(g.display_term, g.total_count) for g in result.frequency_table],
            [("shoes", 13), ("socks", 5)],
        )
        self.assertNotIn("red", result.dtm.vocabulary)
        self.assertNotIn("red", [a.term for a in result.topic_assignments])
        self.assertEqual([g.stem for g in result.excluded_groups], ["red"])

    def test_single_topic(self):
        result = run_analysis(SCENARIO, _config(n_topics=1))
        self.assertEqual(result.topic_status, TOPICS_OK)
        self.assertEqual(len(result.topic_assignments), 3)
        for a in result.topic_assignments:
            self.assertEqual(a.topic_id, 0)
            self.assertEqual(a.affinity, 1.0)

    def test_count_conservation_before_exclusion(self):
        result = run_analysis(QUERIES, _config(excluded_stems={"shoe"}, run_topics=False))
        self.assertEqual(
            sum(g.total_count for g in result.stem_groups),
            sum(t.count for t in result.terms),
        )


class PipelineTests(unittest.TestCase):
    def test_deterministic(self):
        config = _config(n_topics=3)
        a = run_analysis(QUERIES, config)
        b = run_analysis(QUERIES, config)
        self.assertEqual(a.frequency_table, b.frequency_table)
        self.assertEqual(a.topic_assignments, b.topic_assignments)
        self.assertTrue((a.topic_weights.weights == b.topic_weights.weights).all())

    def test_gibbs_engine_from_config(self):
        result = run_analysis(QUERIES, _config(n_topics=2, topic_engine="gibbs", gibbs_iterations=20))
        self.assertEqual(result.topic_status, TOPICS_OK)
        self.assertEqual(len(result.topic_views), 2)

    def test_explicit_topic_model(self):
        result = run_analysis(QUERIES, _config(n_topics=2), topic_model=GibbsLDA(iterations=10))
        self.assertEqual(result.topic_weights.n_topics, 2)

    def test_question_view(self):
        result = run_analysis(QUERIES, _config(keep_question_words=True, run_topics=False))
        self.assertEqual(
            [g.display_term for g in result.question_table],
            ["how", "where"],
        )
        self.assertIn("how", [g.display_term for g in result.frequency_table])

    def test_no_vocabulary_gives_empty_status(self):
        result = run_analysis([("the", 4), ("東京", 2)], _config())
        self.assertEqual(result.frequency_table, ())
        self.assertEqual(result.topic_status, TOPICS_EMPTY)
        self.assertEqual(result.topic_assignments, ())
        self.assertIsNone(result.topic_weights)

    def test_too_few_terms_propagates(self):
        with self.assertRaises(InsufficientVocabularyError):
            run_analysis(SCENARIO, _config(n_topics=5))

    def test_min_frequency_counts_against_vocabulary(self):
        with self.assertRaises(InsufficientVocabularyError):
            run_analysis(SCENARIO, _config(stemmer="none", min_frequency=6, n_topics=3))

    def test_bad_input_rejected_up_front(self):
        with self.assertRaises(InputShapeError):
            run_analysis([("ok", 1), ("bad", -1)], _config())

    def test_frames(self):
        frames = run_analysis(QUERIES, _config(n_topics=2)).to_frames()
        self.assertIn("frequency", frames)
        self.assertIn("topic_0", frames)
        self.assertEqual(frames["frequency"].iloc[0]["display_term"], "shoes")


class ConfigTests(unittest.TestCase):
    def test_from_mapping(self):
        config = AnalysisConfig.from_mapping({"n_topics": 4, "excluded_stems": ["Shoe"]})
        self.assertEqual(config.n_topics, 4)
        self.assertEqual(config.excluded_stems, frozenset({"shoe"}))

    def test_unknown_key(self):
        with self.assertRaises(ConfigError):
            AnalysisConfig.from_mapping({"topics": 4})

    def test_invalid_values(self):
        with self.assertRaises(ConfigError):
            AnalysisConfig(n_topics=0)
        with self.assertRaises(ConfigError):
            AnalysisConfig(topic_engine="nmf")
        with self.assertRaises(ConfigError):
            AnalysisConfig(min_affinity=2.0)


class LoggingTests(unittest.TestCase):
    def tearDown(self) -> None:
        logger = logging.getLogger(LOGGER_NAME)
        for h in list(logger.handlers):
            logger.removeHandler(h)

    def test_configure_is_idempotent(self):
        logger = configure_logging()
        n = len(logger.handlers)
        configure_logging()
        self.assertEqual(len(logger.handlers), n)


if __name__ == "__main__":
    unittest.main()
