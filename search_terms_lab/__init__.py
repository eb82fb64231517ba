from search_terms_lab.analysis.pipeline import AnalysisResult, run_analysis
from search_terms_lab.config import AnalysisConfig
from search_terms_lab.log import configure_logging
from search_terms_lab.utils.processing import load_query_counts

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "configure_logging",
    "load_query_counts",
    "run_analysis",
]
