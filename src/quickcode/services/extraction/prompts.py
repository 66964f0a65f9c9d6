from __future__ import annotations

EXTRACTION_PROMPT_TEMPLATE = """Analyze the following clinical note.
1. Extract relevant ICD-10 and CPT codes.
2. Provide a brief, one-sentence summary of the visit.
3. For each code, provide a confidence score from 0.0 to 1.0.

Note:
{note}

Provide the output in a clean JSON format like this, and nothing else:
{{
  "summary": "A one-sentence summary here.",
  "codes": [
    {{"code": "E11.9", "type": "ICD-10", "description": "Type 2 diabetes mellitus without complications", "confidence": 0.95}},
    {{"code": "I10", "type": "ICD-10", "description": "Essential (primary) hypertension", "confidence": 0.90}}
  ]
}}
"""


def build_extraction_prompt(note: str) -> str:
    """Return the instruction prompt with the note embedded verbatim."""

    return EXTRACTION_PROMPT_TEMPLATE.format(note=note)
