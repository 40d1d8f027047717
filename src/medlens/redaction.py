import re

PLACEHOLDER = "[REDACTED]"

# Labelled identifiers keep their label and lose the value.
LABELLED_IDENTIFIERS = re.compile(
    r"(?P<label>\b(?:patient(?:\s+name)?|name|patient\s*id|mrn|dob|date\s+of\s+birth)\s*:[ \t]*)"
    r"(?P<value>[^\n]+)",
    re.IGNORECASE,
)

SAFE_HARBOR_PATTERNS = [
    re.compile(r"\b\d{3}[-.\s]?\d{2}[-.\s]?\d{4}\b"),
    re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b"),
    re.compile(r"https?://\S+"),
    re.compile(r"(?<![\d.])(\+?\d{1,3}[-.\s])?\(?\d{3}\)?[-.\s]\d{3}[-.\s]\d{4}\b"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\b[Dd]r\.?[ \t]+[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*"),
]


def safe_harbor_redact(text: str) -> str:
    red = LABELLED_IDENTIFIERS.sub(lambda m: m.group("label") + PLACEHOLDER, text)
    for pat in SAFE_HARBOR_PATTERNS:
        red = pat.sub(PLACEHOLDER, red)
    return red
