"""Rule-based date and keyword extraction using regex patterns.

Extracts dates in several formats and categorized medical keywords
from OCR or PDF text.
"""

import re
from dataclasses import dataclass, field

from medscan.utils.logger import get_logger

logger = get_logger(__name__)

MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_MONTHS = "|".join(MONTH_NAMES)
_MONTH_FLAGS = re.IGNORECASE | re.ASCII

_NUMERIC_DATE = re.compile(r"\b(\d{1,2})[/\-](\d{1,2})[/\-](\d{4})\b", re.ASCII)

# Ordered, independent matchers. The numeric triplet appears twice on
# purpose: the same span is both a month-first and a day-first reading.
DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (_NUMERIC_DATE, "MM/DD/YYYY"),
    (_NUMERIC_DATE, "DD/MM/YYYY"),
    (
        re.compile(rf"\b({_MONTHS})\s+(\d{{1,2}}),?\s+(\d{{4}})\b", _MONTH_FLAGS),
        "Month DD, YYYY",
    ),
    (
        re.compile(rf"\b(\d{{1,2}})\s+({_MONTHS})\s+(\d{{4}})\b", _MONTH_FLAGS),
        "DD Month YYYY",
    ),
    (re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b", re.ASCII), "YYYY-MM-DD"),
)

MEDICAL_KEYWORDS: dict[str, tuple[str, ...]] = {
    "conditions": (
        "diabetes",
        "hypertension",
        "asthma",
        "cancer",
        "arthritis",
        "allergy",
        "infection",
        "disease",
        "syndrome",
        "disorder",
    ),
    "medications": (
        "medication",
        "prescription",
        "drug",
        "tablet",
        "capsule",
        "dose",
        "mg",
        "ml",
        "antibiotic",
        "vaccine",
    ),
    "procedures": (
        "surgery",
        "operation",
        "procedure",
        "treatment",
        "therapy",
        "examination",
        "test",
        "scan",
        "xray",
        "mri",
        "ct scan",
    ),
    "vitals": (
        "blood pressure",
        "heart rate",
        "temperature",
        "weight",
        "height",
        "bmi",
        "pulse",
        "oxygen",
        "glucose",
    ),
    "documents": (
        "report",
        "prescription",
        "invoice",
        "receipt",
        "referral",
        "lab",
        "laboratory",
        "pathology",
        "radiology",
    ),
}

OTHER_CATEGORY = "other"

_PROPER_NOUN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b", re.ASCII)


@dataclass(frozen=True)
class DateMatch:
    """A date-looking span found in text.

    ``alternatives`` lists further format labels that matched the very
    same span; interpreting the ambiguity is left to the caller.
    """

    raw: str
    format: str
    alternatives: tuple[str, ...] = ()


@dataclass(frozen=True)
class KeywordSet:
    """Keywords grouped by category plus their deduplicated union.

    The category mapping itself is a plain dict; its values are tuples.
    """

    categorized: dict[str, tuple[str, ...]] = field(default_factory=dict)
    all: tuple[str, ...] = ()
    count: int = 0


def extract_dates(text: str) -> list[DateMatch]:
    """Find dates in text, one entry per distinct matched substring.

    Matchers run in a fixed order over the full text; the first label
    seen for a substring wins and later labels are kept as alternatives.

    Args:
        text: Text to search.

    Returns:
        Date matches in first-seen order.
    """
    if not text:
        return []

    labels: dict[str, list[str]] = {}
    for pattern, label in DATE_PATTERNS:
        for match in pattern.finditer(text):
            seen = labels.setdefault(match.group(0), [])
            if label not in seen:
                seen.append(label)

    dates = [
        DateMatch(raw=raw, format=found[0], alternatives=tuple(found[1:]))
        for raw, found in labels.items()
    ]
    logger.debug("Found %d distinct dates", len(dates))
    return dates


def extract_proper_nouns(text: str, limit: int = 10) -> list[str]:
    """Collect distinct capitalized word sequences, skipping month names."""
    months = set(MONTH_NAMES)
    found: list[str] = []
    for candidate in _PROPER_NOUN.findall(text):
        if len(candidate) <= 3 or candidate in months or candidate in found:
            continue
        found.append(candidate)
        if len(found) >= limit:
            break
    return found


def extract_keywords(text: str, max_proper_nouns: int = 10) -> KeywordSet:
    """Extract categorized medical keywords from text.

    Dictionary terms match as case-insensitive substrings. Capitalized
    sequences go to the ``other`` category.

    Args:
        text: Text to analyze.
        max_proper_nouns: Cap on the ``other`` category.

    Returns:
        Categorized keywords and their union.
    """
    if not text:
        return KeywordSet()

    lower_text = text.lower()
    categorized: dict[str, tuple[str, ...]] = {
        category: tuple(term for term in terms if term in lower_text)
        for category, terms in MEDICAL_KEYWORDS.items()
    }
    categorized[OTHER_CATEGORY] = tuple(extract_proper_nouns(text, max_proper_nouns))

    flat = [term for terms in categorized.values() for term in terms]
    union = tuple(dict.fromkeys(flat))
    logger.debug("Found %d keywords (%d distinct)", len(flat), len(union))
    return KeywordSet(categorized=categorized, all=union, count=len(flat))
