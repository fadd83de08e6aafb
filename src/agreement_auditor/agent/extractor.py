import asyncio
import logging
import os
from typing import Optional, Union

import httpx
from pydantic_ai import Agent, BinaryContent
from pydantic_ai.exceptions import AgentRunError, UserError
from pydantic_ai.models import Model

from agreement_auditor.agent.prompt import SYSTEM_PROMPT, build_instruction
from agreement_auditor.config import settings
from agreement_auditor.core.categories import CategoryRegistry
from agreement_auditor.core.errors import AuditorError, ConfigurationError, ExtractionFailure
from agreement_auditor.core.schema import ExtractedInvoice
from agreement_auditor.core.session import SubmissionSession
from agreement_auditor.processing.image import prepare_image
from agreement_auditor.processing.normalizer import parse_extraction, summarize

logger = logging.getLogger(__name__)


# Plain text output; the normalizer parses the reply leniently.
extraction_agent = Agent(
    output_type=str,
    system_prompt=SYSTEM_PROMPT,
    )


def check_credentials(model: Union[str, Model]):
    """Fails fast when a hosted model is configured without its API key."""
    if isinstance(model, str) and not os.getenv(settings.ai.api_key_env):
        raise ConfigurationError(
            f"API key missing: set {settings.ai.api_key_env} to use the {model} extraction model."
        )


async def extract_invoice(
    image_file,
    filename: str,
    categories: Optional[CategoryRegistry] = None,
    model: Union[str, Model, None] = None,
    timeout: Optional[float] = None,
) -> ExtractedInvoice:
    """Entry point: preprocess image, ask the model, normalize its reply."""
    model = model or settings.ai.model
    timeout = timeout if timeout is not None else settings.ai.timeout_seconds
    categories = categories if categories is not None else CategoryRegistry()

    check_credentials(model)
    logger.info("Starting extraction for %s", filename)

    payload = prepare_image(image_file)
    logger.info("Image preprocessed (%d bytes %s)", len(payload.data), payload.media_type)

    try:
        result = await asyncio.wait_for(
            extraction_agent.run(
                [
                    build_instruction(categories),
                    BinaryContent(data=payload.data, media_type=payload.media_type),
                ],
                model=model,
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError as e:
        logger.error("Extraction for %s timed out after %.1fs", filename, timeout)
        raise ExtractionFailure(f"AI extraction timed out after {timeout:g} seconds.") from e
    except (AgentRunError, UserError, httpx.HTTPError) as e:
        logger.exception("Agent run failed for %s", filename)
        raise ExtractionFailure(f"AI extraction failed: {e}") from e

    invoice = parse_extraction(result.output, categories).unwrap()
    logger.info("Extracted %s from %s", summarize(invoice), filename)
    return invoice


async def run_extraction(session: SubmissionSession, image_file, filename: str, **kwargs) -> bool:
    """
    Extracts into a session. Returns False when a newer upload superseded this
    one while the model was working; the late result is dropped. Any other
    failure, including a missing API key, is recorded on the session and re-raised.
    """
    token = session.begin_extraction(filename)
    try:
        invoice = await extract_invoice(image_file, filename, categories=session.categories, **kwargs)
    except AuditorError as e:
        if session.fail_extraction(token, str(e)):
            raise
        return False
    return session.apply_extraction(token, invoice)
