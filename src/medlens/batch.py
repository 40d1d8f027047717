"""Run document processing over a table of report texts."""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd

from .contracts import DocumentArtifact
from .errors import MedLensError
from .pipeline import MedLensPipeline

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "record",
    "report_type",
    "confidence",
    "quality",
    "lab_results",
    "abnormal_labs",
    "medications",
    "diagnoses",
    "entities",
    "error",
]


async def process_notes(
    pipeline: MedLensPipeline,
    frame: pd.DataFrame,
    column: str = "description",
    sample_size: Optional[int] = None,
) -> pd.DataFrame:
    """Process each note in ``frame[column]`` and summarise one row per note.

    Notes that fail to process keep their row with the error message set.
    """

    if column not in frame.columns:
        raise KeyError(f"Column {column!r} not found; available: {', '.join(map(str, frame.columns))}")

    if sample_size is not None and sample_size < len(frame):
        frame = frame.sample(n=sample_size, random_state=42)

    rows: List[Dict[str, Any]] = []
    total = len(frame)
    for position, (idx, note) in enumerate(frame[column].items(), start=1):
        logger.info("Processing record %s (%d/%d)", idx, position, total)
        artifact = DocumentArtifact(
            content=str(note if pd.notna(note) else "").encode("utf-8"),
            media_type="text/plain",
            name=f"record-{idx}.txt",
        )
        try:
            document = await pipeline.process_document(artifact)
        except MedLensError as exc:
            logger.warning("Record %s skipped: %s", idx, exc)
            rows.append({"record": idx, "error": str(exc)})
            continue

        data = document.structured_data
        rows.append(
            {
                "record": idx,
                "report_type": data.report_type,
                "confidence": round(document.confidence, 3),
                "quality": document.metadata.quality,
                "lab_results": len(data.lab_results),
                "abnormal_labs": sum(1 for result in data.lab_results if result.status in ("low", "high", "critical")),
                "medications": len(data.medications),
                "diagnoses": len(data.diagnoses),
                "entities": len(document.entities),
                "error": None,
            }
        )

    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)
