"""Stage 1: extract structured findings from raw paper text."""

from __future__ import annotations

import logging

from llm_client import LLMClient
from models import AnalysisRecord, Document

ANALYZER_TEMPERATURE = 0.3

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a research paper analyzer agent. Your job is to extract and analyze key information from academic papers.

Output ONLY valid JSON with this exact structure:
{
  "title": "extracted paper title",
  "abstract": "paper abstract or summary",
  "keyFindings": ["finding 1", "finding 2", "finding 3", "finding 4"],
  "methodology": {
    "approach": "research approach description",
    "dataCollection": "data collection methods",
    "analysis": "analysis methods used"
  },
  "mainTopics": ["topic 1", "topic 2", "topic 3"],
  "technicalTerms": ["term1", "term2", "term3"],
  "conclusions": "main conclusions",
  "citations": 20,
  "wordCount": 0
}

Be thorough and accurate. Extract real information from the paper."""


def analyze_document(document: Document, client: LLMClient) -> AnalysisRecord:
    """Analyze one paper and return its AnalysisRecord.

    The backend's own ``wordCount`` is discarded; the record always carries the
    whitespace-token count of the submitted text.
    """
    LOGGER.info("Analyzing paper (%s words)", document.word_count)
    prompt = (
        "Analyze this research paper and extract key information:\n\n"
        f"{document.content}\n\n"
        "Provide a comprehensive analysis in JSON format."
    )
    payload = client.generate_structured(
        prompt,
        SYSTEM_PROMPT,
        temperature=ANALYZER_TEMPERATURE,
        schema_name="analysis",
    )
    record = AnalysisRecord.from_payload(payload, word_count=document.word_count)
    LOGGER.info(
        "Analysis complete: title=%r findings=%s topics=%s",
        record.title,
        len(record.key_findings),
        len(record.main_topics),
    )
    return record
