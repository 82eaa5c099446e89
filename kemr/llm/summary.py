"""
AI clinical summary.

Sends the patient record to the LLM and returns a structured AiSummary.
Failures are reported as SummaryError with a message fit for display.
"""

from __future__ import annotations

import logging
from datetime import date

from anthropic import APIError
from pydantic import ValidationError

from kemr.errors import SummaryError
from kemr.llm.client import LLMClient, PromptBuilder, get_client
from kemr.models import AiSummary, Patient
from kemr.rules import check_patient, vitals_flags


logger = logging.getLogger(__name__)

SUMMARY_TEMPLATE = "clinical_summary.txt"

SYSTEM_PROMPT = (
    "You are a careful clinical documentation assistant. You summarise records; "
    "you do not replace clinical judgement. Use the provided tool to output your response."
)

LOADING_MESSAGES = [
    "Connecting to AI service...",
    "Analyzing vitals and lab results...",
    "Reviewing historical clinical notes...",
    "Checking for medication interactions...",
    "Compiling final clinical summary...",
    "Almost there, finalizing insights...",
]

INVALID_FORMAT_MESSAGE = "The AI model returned an invalid format. Please try again."


def _rule_flags(patient: Patient) -> list[str]:
    flags = [
        f"Possible allergy conflict: {c.medication} vs alert '{c.alert}'"
        for c in check_patient(patient)
    ]
    latest = patient.latest_vitals
    if latest is not None:
        flags.extend(f"Latest vitals: {reason}" for reason in vitals_flags(latest).values())
    return flags


def build_summary_prompt(patient: Patient, builder: PromptBuilder | None = None) -> str:
    builder = builder or PromptBuilder()
    flags = _rule_flags(patient)
    return builder.render(
        SUMMARY_TEMPLATE,
        today=date.today().isoformat(),
        flags="\n".join(f"- {f}" for f in flags) if flags else "- none",
    )


def generate_clinical_summary(
    patient: Patient,
    client: LLMClient | None = None,
) -> AiSummary:
    """
    Produce a narrative clinical summary for one patient.

    Raises:
        SummaryError: the client is not configured, the API call failed, or
            the model's output did not match the AiSummary schema.
    """
    try:
        llm = client or get_client()
    except ValueError as e:
        raise SummaryError(f"AI summary unavailable: {e}") from e

    prompt = build_summary_prompt(patient)
    logger.info("Generating clinical summary for %s", patient.id)

    try:
        result = llm.generate_with_context(
            prompt=prompt,
            context=patient.clinical_context(),
            schema=AiSummary,
            system=SYSTEM_PROMPT,
        )
    except (ValidationError, ValueError) as e:
        logger.error("Invalid AI response for %s: %s", patient.id, e)
        raise SummaryError(INVALID_FORMAT_MESSAGE) from e
    except APIError as e:
        logger.error("AI API error for %s: %s", patient.id, e)
        raise SummaryError(f"An AI API error occurred: {e}") from e

    if not result.summary.strip():
        raise SummaryError(INVALID_FORMAT_MESSAGE)
    return result
