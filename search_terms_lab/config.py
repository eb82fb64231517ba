# config.py
from dataclasses import dataclass, field, fields
from typing import FrozenSet, Optional, Tuple

from search_terms_lab.errors import ConfigError

DEFAULT_QUESTION_PREFIXES = ("who", "what", "why", "when", "where", "how")

STEMMERS = ("snowball", "none")
TOPIC_ENGINES = ("variational", "gibbs")
JOIN_KEYS = ("display_term", "stem")


def _lowered(words):
    return frozenset(w.strip().lower() for w in (words or ()) if w and w.strip())


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Everything a single run needs to know.

    stopwords, when given, replaces the NLTK list for `language`
    entirely; extra_stopwords are always added on top.
    """

    language: str = "english"
    stemmer: str = "snowball"
    stopwords: Optional[FrozenSet[str]] = None
    extra_stopwords: FrozenSet[str] = field(default_factory=frozenset)
    excluded_stems: FrozenSet[str] = field(default_factory=frozenset)
    min_frequency: int = 1
    top_n: Optional[int] = None
    question_prefixes: Tuple[str, ...] = DEFAULT_QUESTION_PREFIXES
    # NLTK lists who/what/how/... as stopwords; keep them for the question view
    keep_question_words: bool = False

    run_topics: bool = True
    n_topics: int = 5
    min_affinity: float = 0.001
    seed: int = 1120
    topic_engine: str = "variational"
    gibbs_iterations: int = 200
    join_on: str = "display_term"

    def __post_init__(self):
        # normalise collections so callers can pass lists or sets
        if self.stopwords is not None:
            object.__setattr__(self, "stopwords", _lowered(self.stopwords))
        object.__setattr__(self, "extra_stopwords", _lowered(self.extra_stopwords))
        object.__setattr__(self, "excluded_stems", _lowered(self.excluded_stems))
        object.__setattr__(
            self,
            "question_prefixes",
            tuple(p.strip().lower() for p in self.question_prefixes if p and p.strip()),
        )
        self.validate()

    def validate(self):
        if not self.language:
            raise ConfigError("language must be a non-empty string")
        if self.stemmer not in STEMMERS:
            raise ConfigError(f"stemmer must be one of {STEMMERS}, got {self.stemmer!r}")
        if self.topic_engine not in TOPIC_ENGINES:
            raise ConfigError(
                f"topic_engine must be one of {TOPIC_ENGINES}, got {self.topic_engine!r}"
            )
        if self.join_on not in JOIN_KEYS:
            raise ConfigError(f"join_on must be one of {JOIN_KEYS}, got {self.join_on!r}")
        if self.n_topics < 1:
            raise ConfigError(f"n_topics must be >= 1, got {self.n_topics}")
        if self.min_frequency < 0:
            raise ConfigError(f"min_frequency must be >= 0, got {self.min_frequency}")
        if self.top_n is not None and self.top_n < 0:
            raise ConfigError(f"top_n must be >= 0 or None, got {self.top_n}")
        if not 0.0 <= self.min_affinity <= 1.0:
            raise ConfigError(f"min_affinity must be in [0, 1], got {self.min_affinity}")
        if self.gibbs_iterations < 1:
            raise ConfigError(f"gibbs_iterations must be >= 1, got {self.gibbs_iterations}")

    @classmethod
    def from_mapping(cls, params):
        """Build a config from a plain dict, e.g. collected UI parameters."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(params) - known)
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(unknown)}")
        return cls(**dict(params))
