from medlens.redaction import safe_harbor_redact


def test_redaction_removes_identifiers():
    sample = (
        "Patient Name: John Doe\n"
        "Seen on 03/04/2023 by Dr. Smith\n"
        "Call 555-123-4567 or john@x.com\n"
        "Hemoglobin: 11.2 g/dL (13.5-17.5)"
    )
    redacted = safe_harbor_redact(sample)
    assert "John Doe" not in redacted
    assert "03/04/2023" not in redacted
    assert "Dr. Smith" not in redacted
    assert "555-123-4567" not in redacted
    assert "john@x.com" not in redacted
    assert "Patient Name: [REDACTED]" in redacted


def test_redaction_keeps_lab_values():
    assert safe_harbor_redact("Hemoglobin: 11.2 g/dL (13.5-17.5)") == "Hemoglobin: 11.2 g/dL (13.5-17.5)"
    assert safe_harbor_redact("Platelets: 250 K/uL (150-400)") == "Platelets: 250 K/uL (150-400)"
