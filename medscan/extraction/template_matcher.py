"""Document type detection from an ordered keyword rule table."""

from medscan.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN_TYPE = "Unknown"
DEFAULT_TYPE = "Medical Document"

# First rule with any matching keyword wins, so order matters.
DOCUMENT_TYPE_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Lab Report", ("lab", "laboratory", "test result", "pathology", "specimen")),
    (
        "Prescription",
        ("prescription", "rx", "medication", "take as directed", "refill"),
    ),
    ("Medical Report", ("diagnosis", "patient", "medical history", "examination")),
    ("Invoice/Receipt", ("invoice", "receipt", "amount", "total", "payment", "bill")),
    ("Radiology", ("radiology", "x-ray", "xray", "ct scan", "mri", "ultrasound")),
    ("Vaccination Record", ("vaccination", "vaccine", "immunization", "dose")),
    ("Referral", ("referral", "referred to", "specialist", "consultation")),
)


def detect_document_type(text: str) -> str:
    """Classify text with the first matching document type rule.

    Args:
        text: Document text.

    Returns:
        The matched label, ``"Unknown"`` for empty text, or
        ``"Medical Document"`` when no rule matches.
    """
    if not text:
        return UNKNOWN_TYPE

    lower_text = text.lower()
    for label, keywords in DOCUMENT_TYPE_RULES:
        if any(keyword in lower_text for keyword in keywords):
            logger.debug("Matched document type '%s'", label)
            return label
    return DEFAULT_TYPE
