from typing import List, Tuple

# Lab and vital terms used only to build AI context for report analysis.
LAB_TERM_KEYWORDS: Tuple[str, ...] = (
    "hemoglobin",
    "glucose",
    "cholesterol",
    "blood pressure",
    "heart rate",
    "white blood cells",
    "red blood cells",
    "platelets",
    "creatinine",
    "bilirubin",
    "albumin",
    "protein",
    "sodium",
    "potassium",
    "chloride",
)

REPORT_ANALYSIS_SCHEMA = """{
  "summary": "Brief overview of findings",
  "keyFindings": ["finding1", "finding2"],
  "abnormalValues": [{"parameter": "name", "value": "X", "normal": "Y-Z", "significance": "explanation"}],
  "riskAssessment": {"level": "Low/Medium/High", "factors": ["factor1", "factor2"]},
  "recommendations": ["rec1", "rec2"],
  "followUp": ["action1", "action2"],
  "relatedConditions": ["condition1", "condition2"]
}"""

MEDICINE_SCHEMA = """{
  "name": "Medicine Name",
  "genericName": "Generic Name",
  "category": "Drug Category",
  "uses": ["use1", "use2"],
  "sideEffects": ["effect1", "effect2"],
  "dosage": "Common dosage information",
  "contraindications": ["contra1", "contra2"],
  "interactions": ["drug1", "drug2"],
  "availability": "Available"
}"""


def mentioned_terms(report_text: str) -> List[str]:
    lowered = report_text.lower()
    return [term for term in LAB_TERM_KEYWORDS if term in lowered]


def build_report_analysis_prompt(report_text: str, report_type: str, knowledge: str) -> str:
    return (
        "You are an advanced medical AI assistant with access to a curated medical knowledge base.\n\n"
        f"Analyze this {report_type} medical report using the provided medical knowledge.\n\n"
        f"Report Content:\n{report_text}\n\n"
        f"Relevant Medical Knowledge:\n{knowledge or 'None available.'}\n\n"
        "Provide a comprehensive analysis covering: key findings and extracted values; "
        "comparison with normal reference ranges; clinical significance of abnormal values; "
        "potential health implications; recommended next steps and follow-up; "
        "a Low/Medium/High risk assessment with justification; related conditions to monitor; "
        "and lifestyle recommendations where applicable.\n\n"
        "Return ONLY JSON with exactly these keys:\n"
        f"{REPORT_ANALYSIS_SCHEMA}\n\n"
        "Emphasize that findings must be discussed with a healthcare professional."
    )


def build_medicine_search_prompt(query: str) -> str:
    return (
        f'You are a medical AI assistant. A user is searching for information about: "{query}"\n\n'
        "Describe this medicine: generic and brand names, primary uses, common dosages, "
        "side effects, contraindications and drug interactions.\n\n"
        "Return ONLY JSON with this structure:\n"
        f"{MEDICINE_SCHEMA}\n\n"
        "Answer for legitimate, well-known medications only. "
        "If the query is not about a real medicine, return null."
    )
