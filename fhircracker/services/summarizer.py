"""Clinical summary generation from rendered FHIR narrative text."""

import logging

import anthropic
import openai

from fhircracker.config import DUMMY_MODE
from fhircracker.errors import SummarizationError
from fhircracker.services.llm import LLMEmptyResponse, get_llm_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an advanced AI assistant specialized in medical data analysis and summarization.
Your task is to analyze FHIR (Fast Healthcare Interoperability Resources) data and provide clear, concise, and clinically relevant summaries.

Guidelines for summarization:
1. Focus on clinically significant information and leave out FHIR ids. Write as the attending physician summarizing for a colleague. Skip any introduction.
2. Use clear, professional medical language.
3. Organize information logically (patient demographics, conditions, medications, observations).
4. Highlight important relationships between data elements.
5. Refer to patients by their ID or generic terms when appropriate to protect privacy.
6. Provide context for medical terms when helpful.
7. Keep summaries concise but comprehensive.
8. If multiple patients are present, organize by patient or provide an overview.
9. Note any concerning findings or patterns.
10. Adapt length to data complexity: 1-2 paragraphs for simple cases, more for complex ones.
11. Do not use special characters or markdown. Return plain text without newlines or trailing spaces.

Always maintain clinical accuracy and professionalism in your summaries."""

HEALTH_CHECK_PROMPT = "Hello, can you confirm you are working?"

TEMPERATURE = 0.1
TOP_P = 0.9


def build_user_prompt(
    fhir_text: str,
    context: str | None = None,
    resource_count: int | None = None,
) -> str:
    prompt = f"Please analyze and summarize the following FHIR healthcare data:\n\n{fhir_text}"

    if context:
        prompt += f"\n\nAdditional context or focus areas: {context}"

    if resource_count:
        if resource_count <= 5:
            prompt += (
                f"\n\nThis is a simple case with {resource_count} resources. "
                "Please provide a concise 1-2 paragraph summary."
            )
        elif resource_count <= 20:
            prompt += (
                f"\n\nThis is a moderate case with {resource_count} resources. "
                "Please provide a comprehensive 2-3 paragraph summary."
            )
        else:
            prompt += (
                f"\n\nThis is a complex case with {resource_count} resources. "
                "Please provide a detailed summary organized by key clinical areas."
            )

    prompt += "\n\nPlease provide your summary now:"
    return prompt


def max_tokens_for(resource_count: int | None) -> int:
    """Completion budget scaled to bundle size."""
    if not resource_count:
        return 1000
    if resource_count <= 5:
        return 800
    if resource_count <= 20:
        return 1500
    return 2500


def _dummy_summary(fhir_text: str, resource_count: int | None) -> str:
    lines = [line.strip() for line in fhir_text.splitlines() if line.strip()]
    if not lines:
        return f"No clinical content found in {resource_count or 0} bundle entries."
    return f"Offline summary of {resource_count or 0} bundle entries. " + " ".join(lines)


def _status_error(status: int, message: str) -> SummarizationError:
    if status == 401:
        return SummarizationError(401, "Invalid LLM provider API key")
    if status == 429:
        return SummarizationError(429, "LLM provider rate limit exceeded")
    if status >= 500:
        return SummarizationError(503, "LLM provider service unavailable")
    return SummarizationError(400, f"LLM provider error: {message}")


async def summarize_fhir_data(
    fhir_text: str,
    context: str | None = None,
    resource_count: int | None = None,
) -> str:
    """Generate a plain-text clinical summary of rendered FHIR data.

    Falls back to an offline summary when DUMMY_MODE is set or no provider
    is configured.

    Raises:
        SummarizationError: the provider call failed; carries the HTTP status to report.
    """
    client = get_llm_client()
    if DUMMY_MODE or not client.available():
        logger.info("LLM unavailable, returning offline summary for %d resources", resource_count or 0)
        return _dummy_summary(fhir_text, resource_count)

    user_prompt = build_user_prompt(fhir_text, context, resource_count)
    logger.info("Sending summarization request for %d resources", resource_count or 0)

    try:
        summary = await client.complete(
            system=SYSTEM_PROMPT,
            user=user_prompt,
            max_tokens=max_tokens_for(resource_count),
            temperature=TEMPERATURE,
            top_p=TOP_P,
        )
    except (openai.APIStatusError, anthropic.APIStatusError) as e:
        logger.error("LLM provider error (%s): %s", e.status_code, e.message)
        raise _status_error(e.status_code, e.message) from e
    except (openai.APITimeoutError, anthropic.APITimeoutError) as e:
        logger.error("LLM provider timed out: %s", e)
        raise SummarizationError(408, "Request timeout to LLM provider") from e
    except (openai.APIConnectionError, anthropic.APIConnectionError) as e:
        logger.error("LLM provider unreachable: %s", e)
        raise SummarizationError(500, "Network error calling LLM provider") from e
    except LLMEmptyResponse as e:
        logger.error("LLM provider returned no completion: %s", e)
        raise SummarizationError(500, "No response from LLM provider") from e
    except (openai.APIError, anthropic.APIError) as e:
        logger.error("Error calling LLM provider: %s", e)
        raise SummarizationError(500, "Failed to generate summary") from e

    logger.info("Generated summary of %d characters: %r", len(summary), summary[:100])
    return summary


async def health_check() -> bool:
    """Whether the configured provider answers a trivial prompt."""
    client = get_llm_client()
    if not client.available():
        return False
    try:
        await client.complete(
            system="",
            user=HEALTH_CHECK_PROMPT,
            max_tokens=50,
            temperature=TEMPERATURE,
        )
    except Exception as e:
        logger.warning("LLM health check failed: %s", e)
        return False
    return True
