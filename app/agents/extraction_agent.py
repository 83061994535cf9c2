# app/agents/extraction_agent.py
import asyncio
import json
import logging
import math
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.errors import ExtractionFailure
from app.models.conversation import ExtractionCandidate, Stage
from app.services.llm_service import LanguageModel

logger = logging.getLogger(__name__)

KNOWN_FIELDS = frozenset({
    "firstName",
    "lastName",
    "email",
    "phone",
    "currentAddress",
    "employmentStatus",
    "employer",
    "income",
    "creditScore",
    "propertyType",
    "propertyAddress",
    "loanPurpose",
    "downPayment",
    "loanAmount",
    "timeline",
    "ssn",
})

SYSTEM_PROMPT = (
    "You are a data extraction specialist for mortgage applications. "
    "RETURN STRICT JSON only. Do not wrap in markdown."
)


def build_prompt(message: str, stage: Stage, prior_data: Dict[str, Any]) -> str:
    known = json.dumps(prior_data, default=str, sort_keys=True)
    return (
        "Extract structured data from this message in a mortgage application context.\n\n"
        f"Current stage: {stage.value}\n"
        f"Message: \"{message}\"\n\n"
        f"Previously extracted data (do not re-ask): {known}\n\n"
        "Extract any of the following if present:\n"
        "- firstName, lastName\n"
        "- email\n"
        "- phone\n"
        "- currentAddress\n"
        "- employmentStatus, employer\n"
        "- income (annual, before taxes)\n"
        "- creditScore (estimate)\n"
        "- propertyType (single_family, condo, ...)\n"
        "- propertyAddress\n"
        "- loanPurpose (purchase, refinance, cash_out)\n"
        "- downPayment\n"
        "- loanAmount\n"
        "- timeline\n"
        "- ssn\n\n"
        'Return a JSON object keyed by field name: { "<field>": { "value": ..., "confidence": 0-1 } }'
    )


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Pull the JSON object out of a model reply. Tolerates markdown fences and
    chatter around the object; raises ExtractionFailure otherwise.
    """
    text = (text or "").strip()

    if "```" in text:
        for part in text.split("```"):
            clean_part = part.strip()
            if clean_part.startswith("json"):
                clean_part = clean_part[4:].strip()
            if clean_part.startswith("{") and clean_part.endswith("}"):
                text = clean_part
                break

    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        text = text[first:last + 1]

    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise ExtractionFailure(f"unparseable extraction response: {e}") from e
    if not isinstance(parsed, dict):
        raise ExtractionFailure("extraction response is not a JSON object")
    return parsed


def select_candidates(raw: Dict[str, Any], threshold: float) -> List[ExtractionCandidate]:
    candidates: List[ExtractionCandidate] = []
    for field, entry in raw.items():
        if field not in KNOWN_FIELDS:
            continue
        if not isinstance(entry, dict) or "value" not in entry or "confidence" not in entry:
            continue
        confidence = entry["confidence"]
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            continue
        if not math.isfinite(confidence) or confidence <= threshold:
            continue
        candidates.append(ExtractionCandidate(field=field, value=entry["value"], confidence=float(confidence)))
    return candidates


class FieldExtractor:
    def __init__(
        self,
        llm: LanguageModel,
        threshold: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        self.llm = llm
        self.threshold = settings.CONFIDENCE_THRESHOLD if threshold is None else threshold
        self.timeout = settings.EXTRACTION_TIMEOUT_SECONDS if timeout is None else timeout

    async def extract(self, message: str, stage: Stage, prior_data: Dict[str, Any]) -> List[ExtractionCandidate]:
        """Never raises: any failure means no new data this turn."""
        prompt = build_prompt(message, stage, prior_data)
        try:
            text = await asyncio.wait_for(
                self.llm.complete(SYSTEM_PROMPT, [{"role": "user", "content": prompt}], json_mode=True),
                timeout=self.timeout,
            )
            raw = parse_json_object(text)
        except asyncio.TimeoutError:
            logger.warning("extraction timed out after %.1fs", self.timeout)
            return []
        except Exception as e:
            logger.warning("extraction failed: %s", e)
            return []

        candidates = select_candidates(raw, self.threshold)
        logger.debug("extraction kept %d of %d candidate(s)", len(candidates), len(raw))
        return candidates
