# errors.py


class SearchTermsError(Exception):
    """Base class for every error raised by the pipeline."""


class ConfigError(SearchTermsError, ValueError):
    pass


class InputShapeError(SearchTermsError, ValueError):
    """Malformed raw input, rejected before normalization starts."""

    def __init__(self, detail, row=None, stage="input"):
        self.stage = stage
        self.row = row
        self.detail = detail
        where = f" (row {row})" if row is not None else ""
        super().__init__(f"[{stage}] {detail}{where}")


class EncodingError(SearchTermsError):
    """A single token could not be reduced to ASCII. Recovered per token."""

    def __init__(self, token):
        self.token = token
        super().__init__(f"token {token!r} has no ASCII transliteration")


class EmptyVocabularyError(SearchTermsError):
    def __init__(self, stage="topic_model"):
        self.stage = stage
        self.vocab_size = 0
        super().__init__(f"[{stage}] no terms survived filtering")


class InsufficientVocabularyError(SearchTermsError):
    """Fewer distinct terms than requested topics. K is never clamped."""

    def __init__(self, vocab_size, n_topics, stage="topic_model"):
        self.stage = stage
        self.vocab_size = vocab_size
        self.n_topics = n_topics
        super().__init__(
            f"[{stage}] {n_topics} topics requested but only "
            f"{vocab_size} distinct terms remain"
        )


class TopicModelError(SearchTermsError, ValueError):
    """A topic model returned weights that are not a valid K x V matrix."""

    def __init__(self, detail, model="base", stage="topic_model"):
        self.stage = stage
        self.model = model
        self.detail = detail
        super().__init__(f"[{stage}] {model} model: {detail}")
