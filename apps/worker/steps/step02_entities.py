"""
Stage 2: Entity/fact extraction.
Turn cited prose into DailyEntry records via the model, then strictly parse
the result: malformed facts and entries are dropped individually, quotes are
tied back to their [Page N] marker, and duplicate dates are merged.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError

from apps.worker.lib.model_client import ModelCapability, ModelCapabilityError
from apps.worker.lib.page_citations import locate_quote
from packages.shared.models import DailyEntry, Fact, Warning
from packages.shared.schema_validator import unwrap_entries, validate_envelope

logger = logging.getLogger(__name__)

EXTRACTION_FAILURE_MESSAGE = "Failed to extract entities from prose."


class EntityExtractionError(Exception):
    """Stage 2 failed or produced output that does not conform to the schema."""


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "<entry>"
    return f"{loc}: {err.get('msg', 'invalid')}"


def _parse_fact(
    raw: Any,
    prose: str,
    where: str,
    document_id: Optional[str],
    warnings: list[Warning],
) -> Optional[Fact]:
    if not isinstance(raw, dict):
        warnings.append(Warning(
            code="INVALID_FACT",
            message=f"{where}: fact is not an object",
            document_id=document_id,
        ))
        return None

    data = dict(raw)
    quote = data.get("quote")
    page = data.get("pageNumber", data.get("page_number"))
    if isinstance(quote, str) and quote.strip() and page is None:
        recovered = locate_quote(prose, quote)
        if recovered is not None:
            data["pageNumber"] = recovered
            data.pop("page_number", None)
        else:
            data.pop("quote", None)
            warnings.append(Warning(
                code="QUOTE_UNLOCATED",
                message=f"{where}: quote not found under any [Page N] marker; quote dropped",
                document_id=document_id,
            ))

    try:
        return Fact.model_validate(data)
    except ValidationError as exc:
        warnings.append(Warning(
            code="INVALID_FACT",
            message=f"{where}: {_first_error(exc)}",
            document_id=document_id,
        ))
        return None


def _parse_entry(
    raw: dict[str, Any],
    index: int,
    prose: str,
    document_id: Optional[str],
    warnings: list[Warning],
) -> Optional[DailyEntry]:
    where = f"entry {index}"
    for required in ("date", "summary"):
        value = raw.get(required)
        if not isinstance(value, str) or not value.strip():
            warnings.append(Warning(
                code="MALFORMED_ENTRY",
                message=f"{where}: missing {required}; entry dropped",
                document_id=document_id,
            ))
            return None

    raw_facts = raw.get("facts")
    if not isinstance(raw_facts, list):
        warnings.append(Warning(
            code="MALFORMED_ENTRY",
            message=f"{where}: facts is not a list; entry dropped",
            document_id=document_id,
        ))
        return None

    facts = []
    for j, raw_fact in enumerate(raw_facts):
        fact = _parse_fact(raw_fact, prose, f"{where} fact {j}", document_id, warnings)
        if fact is not None:
            facts.append(fact)
    if not facts:
        warnings.append(Warning(
            code="MALFORMED_ENTRY",
            message=f"{where}: no valid facts; entry dropped",
            document_id=document_id,
        ))
        return None

    raw_tags = next(
        (raw[key] for key in ("tags", "umlsEntities", "conceptTags") if raw.get(key) is not None),
        [],
    )
    tags = [t.strip() for t in raw_tags if isinstance(t, str) and t.strip()] if isinstance(raw_tags, list) else []

    try:
        return DailyEntry(date=raw["date"], summary=raw["summary"], facts=facts, tags=tags)
    except ValidationError as exc:
        warnings.append(Warning(
            code="MALFORMED_ENTRY",
            message=f"{where}: {_first_error(exc)}; entry dropped",
            document_id=document_id,
        ))
        return None


def merge_same_date(entries: list[DailyEntry]) -> tuple[list[DailyEntry], int]:
    """
    Collapse entries sharing a date into one, in first-seen order.
    The first summary wins; facts are concatenated; tags are unioned.
    Returns (entries, number_of_merges).
    """
    merged: dict[str, DailyEntry] = {}
    merges = 0
    for entry in entries:
        existing = merged.get(entry.date)
        if existing is None:
            merged[entry.date] = entry
            continue
        merges += 1
        tags = existing.tags + [t for t in entry.tags if t not in existing.tags]
        merged[entry.date] = existing.model_copy(update={
            "facts": existing.facts + entry.facts,
            "tags": tags,
        })
    return list(merged.values()), merges


def parse_daily_entries(
    payload: Any,
    prose: str,
    document_id: Optional[str] = None,
) -> tuple[list[DailyEntry], list[Warning]]:
    """
    Strictly parse a raw extraction payload into DailyEntry records.

    Raises:
        EntityExtractionError: the envelope is not an entry list, or every
            entry in a non-empty list was malformed.
    """
    ok, errors = validate_envelope(payload)
    if not ok:
        raise EntityExtractionError(
            f"{EXTRACTION_FAILURE_MESSAGE} Output does not match the entry schema ({errors[0]})."
        )

    raw_entries = unwrap_entries(payload)
    warnings: list[Warning] = []
    parsed = []
    for index, raw in enumerate(raw_entries):
        entry = _parse_entry(raw, index, prose, document_id, warnings)
        if entry is not None:
            parsed.append(entry)

    if raw_entries and not parsed:
        raise EntityExtractionError(
            f"{EXTRACTION_FAILURE_MESSAGE} None of the {len(raw_entries)} extracted entries were well-formed."
        )

    entries, merges = merge_same_date(parsed)
    if merges:
        warnings.append(Warning(
            code="DUPLICATE_DATE_MERGED",
            message=f"{merges} entr{'y' if merges == 1 else 'ies'} merged into an earlier entry with the same date",
            document_id=document_id,
        ))
    return entries, warnings


async def extract_daily_entries(
    prose: str,
    capability: ModelCapability,
    timeout: float | None = None,
    document_id: str | None = None,
) -> tuple[list[DailyEntry], list[Warning]]:
    """
    Run stage 2 for one document's prose.

    Returns:
        (entries, warnings)

    Raises:
        EntityExtractionError: capability failure, timeout, or non-conforming output.
    """
    try:
        payload = await asyncio.wait_for(capability.extract_entries(prose), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise EntityExtractionError(f"{EXTRACTION_FAILURE_MESSAGE} The model timed out after {timeout}s.") from exc
    except ModelCapabilityError as exc:
        raise EntityExtractionError(f"{EXTRACTION_FAILURE_MESSAGE} {exc}") from exc

    entries, warnings = parse_daily_entries(payload, prose, document_id)
    if warnings:
        logger.info(f"[{document_id}] Extraction kept {len(entries)} entries with {len(warnings)} warning(s)")
    return entries, warnings
