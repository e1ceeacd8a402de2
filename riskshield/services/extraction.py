"""Certificate of Currency AI extraction, OpenAI-powered.

Turns an uploaded certificate into the structured ``extracted_data`` the
verification rules consume:

1. **PDF** — text is pulled with pdfplumber and sent as a chat message;
   scans without a text layer are rendered to PNG pages and go the image route.
2. **Image** (jpg/png/gif) — sent to the vision model as a base64 data URL.

The model must answer in JSON mode; anything else is an ``ExtractionError``.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict

from openai import AsyncOpenAI, OpenAIError

from riskshield.core.config import settings
from riskshield.core.exceptions import ExtractionError, ServiceUnavailableError
from riskshield.domain.mixins import utcnow
from riskshield.services.parser import extract_raw_text, has_text_layer, render_pdf_pages

logger = logging.getLogger(__name__)

# ── System prompt ─────────────────────────────────────────────────────────

COC_EXTRACTION_PROMPT = """You are an expert Australian insurance analyst reading Certificates of Currency (COC) issued for construction subcontractors.

Extract the certificate into this exact JSON structure:
{
  "is_certificate": true,
  "insured_party_name": "<legal name of the insured>",
  "insured_party_abn": "<11 digit ABN, digits only, or null>",
  "insured_party_address": "<address or null>",
  "insurer_name": "<full legal name of the insurer>",
  "insurer_abn": "<insurer ABN or null>",
  "policy_number": "<policy number or null>",
  "period_of_insurance_start": "YYYY-MM-DD",
  "period_of_insurance_end": "YYYY-MM-DD",
  "coverages": [
    {
      "type": "public_liability | products_liability | workers_comp | professional_indemnity | motor_vehicle | contract_works",
      "limit": <integer AUD>,
      "limit_type": "per_occurrence | aggregate | per_claim | statutory",
      "excess": <integer AUD>,
      "principal_indemnity": <true | false | null>,
      "cross_liability": <true | false | null>,
      "state": "<NSW|VIC|QLD|WA|SA|TAS|NT|ACT, workers_comp only, else null>"
    }
  ],
  "broker_name": "<broker company or null>",
  "broker_contact": "<broker contact person or null>",
  "broker_phone": "<phone or null>",
  "broker_email": "<email or null>",
  "extraction_confidence": <0.0 - 1.0>,
  "field_confidences": {"<field name>": <0.0 - 1.0>}
}

Rules:
1. Dollar amounts are plain integers ("$20M" -> 20000000, "$10,000" -> 10000).
2. Dates are ISO 8601. Australian certificates write dates day-first (DD/MM/YYYY).
3. Set "principal_indemnity" / "cross_liability" to null when the certificate does not mention the extension.
4. If a value cannot be determined, set it to null and lower its confidence.
5. If the document is NOT a certificate of currency or insurance certificate, return {"is_certificate": false, "rejection_reason": "<short explanation>", "extraction_confidence": 0.0}."""

IMAGE_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
}


class CertificateExtractor:
    """Thin async wrapper around OpenAI for certificate data extraction."""

    def __init__(self) -> None:
        if not settings.ai_enabled:
            raise ServiceUnavailableError(
                "AI extraction is not configured. Set OPENAI_API_KEY to enable document processing."
            )
        self.client = AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout,
        )
        self.model = settings.openai_model
        self.max_tokens = settings.openai_max_tokens

    # ── Core OpenAI call ──────────────────────────────────────────────────

    async def _call_openai(self, user_content: Any) -> Dict[str, Any]:
        """Send an async request to OpenAI and return parsed JSON."""
        try:
            logger.info("Calling OpenAI model=%s", self.model)
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": COC_EXTRACTION_PROMPT},
                    {"role": "user", "content": user_content},
                ],
                max_completion_tokens=self.max_tokens,
                response_format={"type": "json_object"},
            )

            content = response.choices[0].message.content
            if not content:
                raise ExtractionError("Empty response from OpenAI")

            logger.info("OpenAI call successful")
            return json.loads(content)

        except OpenAIError as exc:
            logger.error("OpenAI API error: %s", exc)
            raise ExtractionError(f"OpenAI service error: {exc}") from exc
        except json.JSONDecodeError as exc:
            logger.error("Invalid JSON from OpenAI: %s", exc)
            raise ExtractionError(f"Invalid JSON response: {exc}") from exc

    # ── Public methods ────────────────────────────────────────────────────

    async def from_text(self, raw_text: str) -> Dict[str, Any]:
        return await self._call_openai(f"Certificate Text:\n{raw_text}")

    async def from_images(self, images: list[bytes], mime_type: str) -> Dict[str, Any]:
        """Vision extraction; multi-page scans are sent as one message with every page."""
        content: list[Dict[str, Any]] = [
            {
                "type": "text",
                "text": "Extract the certificate shown in this image."
                if len(images) == 1
                else f"Extract the certificate shown across these {len(images)} pages.",
            }
        ]
        for image in images:
            data_url = f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
            content.append(
                {"type": "image_url", "image_url": {"url": data_url, "detail": settings.openai_vision_detail}}
            )
        return await self._call_openai(content)


def normalise_extraction(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Reject non-certificates and coerce the model output into the stored shape."""
    if raw.get("is_certificate") is False:
        reason = raw.get("rejection_reason") or "The uploaded document is not a Certificate of Currency"
        raise ExtractionError(reason)

    data = dict(raw)
    data.pop("is_certificate", None)
    abn = "".join(ch for ch in str(data.get("insured_party_abn") or "") if ch.isdigit())
    data["insured_party_abn"] = abn or None

    coverages = []
    for coverage in data.get("coverages") or []:
        if not isinstance(coverage, dict) or not coverage.get("type"):
            continue
        coverage = dict(coverage)
        for key in ("limit", "excess"):
            try:
                coverage[key] = int(float(coverage.get(key) or 0))
            except (TypeError, ValueError):
                coverage[key] = 0
        coverages.append(coverage)
    data["coverages"] = coverages

    try:
        data["extraction_confidence"] = max(0.0, min(1.0, float(data.get("extraction_confidence") or 0.0)))
    except (TypeError, ValueError):
        data["extraction_confidence"] = 0.0
    data["extraction_model"] = settings.openai_model
    data["extraction_timestamp"] = utcnow().isoformat()
    return data


async def extract_certificate(contents: bytes, file_kind: str) -> Dict[str, Any]:
    """Extract certificate data from a stored upload.

    ``file_kind`` is the lower-case extension (``pdf``, ``png``, ...).
    Raises ``ServiceUnavailableError`` when no OpenAI key is configured and
    ``ExtractionError`` when the model fails or rejects the document.
    """
    extractor = CertificateExtractor()
    if file_kind == "pdf":
        try:
            raw_text = extract_raw_text(contents)
        except Exception as exc:
            logger.warning("pdfplumber could not read PDF: %s", exc)
            raise ExtractionError("Unable to read the PDF. Upload an unprotected copy or an image.") from exc
        if has_text_layer(raw_text):
            raw = await extractor.from_text(raw_text)
        else:
            logger.info("PDF has no text layer, falling back to vision")
            try:
                pages = render_pdf_pages(contents, settings.max_pdf_pages_for_vision, settings.vision_dpi)
            except ValueError as exc:
                raise ExtractionError(str(exc)) from exc
            raw = await extractor.from_images(pages, "image/png")
    elif file_kind in IMAGE_MIME_TYPES:
        raw = await extractor.from_images([contents], IMAGE_MIME_TYPES[file_kind])
    else:
        raise ExtractionError(f"Unsupported file type: {file_kind}")
    return normalise_extraction(raw)
