"""
Stage 1: Prose generation.
Ask the model for an objective narrative of the whole document, with a
[Page N] marker on every sentence. Stage 2 mines those markers for page
numbers, so missing markers are flagged here.
"""
from __future__ import annotations

import asyncio
import logging

from apps.worker.lib.model_client import ModelCapability, ModelCapabilityError
from apps.worker.lib.page_citations import cited_pages
from packages.shared.models import Warning

logger = logging.getLogger(__name__)

PROSE_FAILURE_MESSAGE = "Failed to generate document description."


class ProseGenerationError(Exception):
    """Stage 1 produced no usable prose."""


async def generate_prose(
    content: bytes,
    mime_type: str,
    capability: ModelCapability,
    filename: str = "document",
    timeout: float | None = None,
    document_id: str | None = None,
) -> tuple[str, list[Warning]]:
    """
    Run stage 1 for one document.

    Returns:
        (prose, warnings)

    Raises:
        ProseGenerationError: capability unreachable, timed out, or empty output.
    """
    warnings: list[Warning] = []

    try:
        prose = await asyncio.wait_for(
            capability.generate_prose(content, mime_type, filename),
            timeout=timeout,
        )
    except asyncio.TimeoutError as exc:
        raise ProseGenerationError(f"{PROSE_FAILURE_MESSAGE} The model timed out after {timeout}s.") from exc
    except ModelCapabilityError as exc:
        raise ProseGenerationError(f"{PROSE_FAILURE_MESSAGE} {exc}") from exc

    if not prose or not prose.strip():
        raise ProseGenerationError(f"{PROSE_FAILURE_MESSAGE} The model returned no text.")

    prose = prose.strip()
    pages = cited_pages(prose)
    if not pages:
        warnings.append(Warning(
            code="MISSING_PAGE_CITATIONS",
            message="Prose contains no [Page N] markers; facts cannot be located in the source",
            document_id=document_id,
        ))
    logger.debug(f"[{document_id}] Prose generated: {len(prose)} chars, pages cited={pages}")
    return prose, warnings
