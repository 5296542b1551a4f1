"""Structured parsing of prescription text.

Pulls medication names, dosages, dosing frequencies, standard
instructions, the prescriber and the prescription date out of OCR or
PDF text using regex patterns and phrase tables.
"""

import re
from dataclasses import dataclass, field

from medscan.utils.logger import get_logger

logger = get_logger(__name__)

_MEDICATION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"(?:^|\n)\s*(?:rx:|medication:|drug:)\s*([a-z][a-z0-9\s-]+?)(?:\n|$|[0-9])",
        re.IGNORECASE,
    ),
    # Capitalized words with common drug-name suffixes
    re.compile(r"\b([A-Z][a-z]+(?:ol|in|ide|one|ate|ine|ex|al))\b"),
    # Numbered lists: "1. Medication Name"
    re.compile(r"(?:^|\n)\s*\d+[\.\)]\s*([A-Z][a-z]+[a-z\s-]+?)(?:\s+\d+|$|\n)", re.M),
]

_DOSAGE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(\d+(?:\.\d+)?\s*(?:mg|mcg|g|ml|units?|iu))\b", re.IGNORECASE),
    re.compile(r"\b(\d+(?:\.\d+)?\s*milligrams?)\b", re.IGNORECASE),
    re.compile(r"\b(\d+(?:\.\d+)?\s*micrograms?)\b", re.IGNORECASE),
]

# phrase -> (frequency, times per period)
FREQUENCY_PHRASES: dict[str, tuple[str, int]] = {
    "once daily": ("daily", 1),
    "twice daily": ("daily", 2),
    "three times daily": ("daily", 3),
    "four times daily": ("daily", 4),
    "every 8 hours": ("daily", 3),
    "every 6 hours": ("daily", 4),
    "every 12 hours": ("daily", 2),
    "bid": ("daily", 2),
    "tid": ("daily", 3),
    "qid": ("daily", 4),
    "qd": ("daily", 1),
    "weekly": ("weekly", 1),
    "as needed": ("as_needed", 0),
}

INSTRUCTION_PHRASES: tuple[str, ...] = (
    "take with food",
    "take with meals",
    "take on empty stomach",
    "take before bed",
    "take in the morning",
    "take before breakfast",
    "do not crush",
    "do not chew",
    "swallow whole",
    "with water",
    "avoid alcohol",
    "avoid dairy",
    "may cause drowsiness",
    "take at bedtime",
)

_PRESCRIBER_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:Dr\.|Doctor)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"),
    re.compile(r"Prescriber:\s*([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)", re.IGNORECASE),
    re.compile(r"Physician:\s*([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)", re.IGNORECASE),
]

_PRESCRIPTION_DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:Date|Dated?):\s*(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})", re.IGNORECASE),
    re.compile(r"(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"),
]


@dataclass(frozen=True)
class Frequency:
    """Dosing frequency, e.g. twice per day."""

    frequency: str
    times: int


@dataclass
class PrescriptionData:
    """Structured fields parsed from a prescription."""

    medications: list[str] = field(default_factory=list)
    dosages: list[str] = field(default_factory=list)
    frequencies: list[Frequency] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    doctor_name: str | None = None
    date: str | None = None


def extract_medications(text: str) -> list[str]:
    medications: list[str] = []
    for pattern in _MEDICATION_PATTERNS:
        for match in pattern.finditer(text):
            med = match.group(1).strip()
            if 3 < len(med) < 50 and med not in medications:
                medications.append(med)
    return medications


def extract_dosages(text: str) -> list[str]:
    dosages: list[str] = []
    for pattern in _DOSAGE_PATTERNS:
        for match in pattern.finditer(text):
            dosage = match.group(1).strip()
            if dosage not in dosages:
                dosages.append(dosage)
    return dosages


def extract_frequencies(text: str) -> list[Frequency]:
    # Substring match, so "bid" also fires inside longer words.
    lower_text = text.lower()
    return [
        Frequency(frequency=freq, times=times)
        for phrase, (freq, times) in FREQUENCY_PHRASES.items()
        if phrase in lower_text
    ]


def extract_instructions(text: str) -> list[str]:
    lower_text = text.lower()
    return [
        phrase[0].upper() + phrase[1:]
        for phrase in INSTRUCTION_PHRASES
        if phrase in lower_text
    ]


def _first_group(patterns: list[re.Pattern[str]], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return None


def parse_prescription(text: str) -> PrescriptionData:
    """Parse prescription text into structured fields.

    Args:
        text: OCR or PDF text of a prescription.

    Returns:
        Parsed prescription data; fields are empty when nothing matches.
    """
    data = PrescriptionData(
        medications=extract_medications(text),
        dosages=extract_dosages(text),
        frequencies=extract_frequencies(text),
        instructions=extract_instructions(text),
        doctor_name=_first_group(_PRESCRIBER_PATTERNS, text),
        date=_first_group(_PRESCRIPTION_DATE_PATTERNS, text),
    )
    logger.info(
        "Parsed prescription: %d medications, %d dosages, %d frequencies",
        len(data.medications),
        len(data.dosages),
        len(data.frequencies),
    )
    return data
