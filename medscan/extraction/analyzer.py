"""Text analysis: dates, keywords, document type and word count."""

from dataclasses import dataclass, field, replace

from medscan.utils.config import AnalysisConfig
from medscan.utils.logger import get_logger

from .rule_extractor import DateMatch, KeywordSet, extract_dates, extract_keywords
from .template_matcher import UNKNOWN_TYPE, detect_document_type

logger = get_logger(__name__)


@dataclass(frozen=True)
class Analysis:
    """Classified metadata derived from document text."""

    document_type: str = UNKNOWN_TYPE
    dates: tuple[DateMatch, ...] = ()
    keywords: KeywordSet = field(default_factory=KeywordSet)
    word_count: int = 0
    text_length: int = 0
    has_content: bool = False
    summary: str = ""


def count_words(text: str) -> int:
    """Count non-empty whitespace-delimited tokens."""
    return len(text.split())


def search_text(text: str, query: str) -> bool:
    """Case-insensitive containment test."""
    if not text or not query:
        return False
    return query.lower() in text.lower()


def generate_summary(analysis: Analysis) -> str:
    """Build a one-line summary such as ``Type: Lab Report • 12 words``."""
    parts = [f"Type: {analysis.document_type}"]
    if analysis.dates:
        parts.append(f"{len(analysis.dates)} date(s) found")
    if analysis.keywords.count > 0:
        parts.append(f"{analysis.keywords.count} keyword(s) detected")
    parts.append(f"{analysis.word_count} words")
    return " • ".join(parts)


class TextAnalyzer:
    """Extracts classified metadata from raw document text.

    Args:
        config: Analysis configuration.
    """

    def __init__(self, config: AnalysisConfig | None = None) -> None:
        self.config = config or AnalysisConfig()

    def analyze(self, text: str) -> Analysis:
        """Analyze text comprehensively.

        Texts shorter than the minimum length skip extraction and yield
        an ``Unknown`` analysis with no dates, keywords or words.

        Args:
            text: Extracted document text.

        Returns:
            The analysis.
        """
        if not text or len(text) < self.config.min_text_length:
            return Analysis()

        analysis = Analysis(
            document_type=detect_document_type(text),
            dates=tuple(extract_dates(text)),
            keywords=extract_keywords(text, self.config.max_proper_nouns),
            word_count=count_words(text),
            text_length=len(text),
            has_content=True,
        )
        analysis = replace(analysis, summary=generate_summary(analysis))
        logger.info(
            "Analysis: type=%s dates=%d keywords=%d words=%d",
            analysis.document_type,
            len(analysis.dates),
            analysis.keywords.count,
            analysis.word_count,
        )
        return analysis


def analyze_text(text: str, config: AnalysisConfig | None = None) -> Analysis:
    """Convenience wrapper around :meth:`TextAnalyzer.analyze`."""
    return TextAnalyzer(config).analyze(text)
