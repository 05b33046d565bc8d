"""
Claude-backed AI extraction service.

Supports:
- Text extraction against a JSON schema (extract)
- Vision extraction for scanned PDFs and photos (extract_advanced)

Both calls are best-effort: they time out after settings.ai_timeout_seconds
and return None on any failure so callers fall back to pattern-only results.
"""

import asyncio
import json
import logging

import anthropic

from freight_intake.config import Settings

logger = logging.getLogger("freight.ai")

EXTRACTION_SYSTEM_PROMPT = """You are a freight quotation extraction specialist. Your job is to extract structured data from customer quote requests for vehicle and heavy-equipment shipping (RoRo and container).

Extract all available information accurately. If a field is not present in the document, use null. Convert dimensions to meters and weights to kilograms. For dates, use ISO 8601 format (YYYY-MM-DD). Include a top-level "confidence" between 0 and 1 reflecting how sure you are overall.

Respond with valid JSON only, no additional text."""

FREIGHT_QUOTE_SCHEMA = """{
  "contact": {"name": "string or null", "company": "string or null", "email": "string or null", "phone": "string or null", "address": "string or null"},
  "vehicle": {"brand": "string or null", "model": "string or null", "year": 0, "vin": "string or null", "condition": "new|used|damaged or null",
              "fuel_type": "string or null", "engine_cc": 0, "weight_kg": 0,
              "dimensions": {"length_m": 0, "width_m": 0, "height_m": 0}},
  "shipment": {"origin": "string or null", "destination": "string or null", "shipping_type": "roro|container_20ft|container_40ft|container_40hc or null"},
  "pricing": {"amount": 0, "currency": "ISO 4217 code or null", "incoterm": "string or null"},
  "dates": {"pickup_date": "YYYY-MM-DD or null", "delivery_date": "YYYY-MM-DD or null", "etd": "YYYY-MM-DD or null", "eta": "YYYY-MM-DD or null"},
  "cargo": {"quantity": 0, "description": "string or null"},
  "confidence": 0.0
}"""

DEFAULT_CONFIDENCE = 0.8


def _parse_json_response(response_text: str) -> dict:
    """Parse JSON from Claude response, handling markdown code blocks."""
    text = response_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        return json.loads(text)
    except (json.JSONDecodeError, IndexError) as e:
        logger.error("Failed to parse Claude response as JSON: %s", e)
        raise ValueError(f"Claude response was not valid JSON: {e}") from e


def _build_content(text: str = "", images: list[dict] | None = None, extra_text: str = "") -> list[dict]:
    """Build Claude message content array supporting text and vision."""
    content: list[dict] = []

    for img in images or []:
        content.append({
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": img["media_type"],
                "data": img["base64"],
            },
        })

    text_parts = [t for t in (text, extra_text) if t and t.strip()]
    if text_parts:
        content.append({"type": "text", "text": "\n\n".join(text_parts)})

    return content


class AIExtractionService:
    def __init__(self, settings: Settings, client: anthropic.AsyncAnthropic | None = None):
        self.settings = settings
        self.model = settings.claude_model
        self.max_tokens = settings.claude_max_tokens
        self.timeout = settings.ai_timeout_seconds
        self._enabled = settings.ai_enabled and (client is not None or bool(settings.anthropic_api_key))
        self.client = client
        if self.client is None and self._enabled:
            self.client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def extract(self, content: str, schema: str | None = None, options: dict | None = None) -> dict | None:
        """Extract structured data from text.

        Args:
            content: Document text.
            schema: JSON schema template the response must follow.
            options: {"document_id", "hints": dict of already-extracted fields}.

        Returns:
            {"data", "confidence", "metadata"} or None when disabled, timed out or failed.
        """
        options = options or {}
        if not self.enabled or not content.strip():
            return None

        extra = self._instructions(schema, options)
        parsed = await self._call(_build_content(text=content, extra_text=extra), options.get("document_id"))
        if parsed is None:
            return None

        confidence = _confidence(parsed.pop("confidence", None))
        return {
            "data": parsed,
            "confidence": confidence,
            "metadata": {"model": self.model, "mode": "text"},
        }

    async def extract_advanced(self, input: dict, mode: str = "vision", context: dict | None = None) -> dict | None:
        """Vision extraction for images and scanned pages.

        Args:
            input: {"images": [{"base64", "media_type"}], "text": optional OCR text}.
            mode: "vision" or "text".
            context: {"document_id", "schema", "hints"}.

        Returns:
            {"extracted_data", "metadata"} or None on failure.
        """
        context = context or {}
        if not self.enabled:
            return None
        images = input.get("images") if mode == "vision" else None
        if not images and not (input.get("text") or "").strip():
            return None

        extra = self._instructions(context.get("schema"), context)
        parsed = await self._call(
            _build_content(text=input.get("text", ""), images=images, extra_text=extra),
            context.get("document_id"),
        )
        if parsed is None:
            return None

        confidence = _confidence(parsed.pop("confidence", None))
        return {
            "extracted_data": parsed,
            "metadata": {"model": self.model, "mode": mode, "confidence": confidence, "images": len(images or [])},
        }

    def _instructions(self, schema: str | None, options: dict) -> str:
        parts = [f"Extract data matching this JSON schema:\n{schema or FREIGHT_QUOTE_SCHEMA}"]
        hints = options.get("hints")
        if hints:
            parts.append(f"Fields already extracted by pattern matching (verify and complete):\n{json.dumps(hints, default=str)}")
        return "\n\n".join(parts)

    async def _call(self, content: list[dict], document_id: str | None) -> dict | None:
        try:
            response = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.model,
                    max_tokens=self.max_tokens,
                    system=EXTRACTION_SYSTEM_PROMPT,
                    messages=[{"role": "user", "content": content}],
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("AI extraction timed out after %.1fs for document %s", self.timeout, document_id)
            return None
        except Exception as e:
            logger.warning("AI extraction failed for document %s: %s", document_id, e)
            return None

        try:
            parsed = _parse_json_response(response.content[0].text)
        except (ValueError, IndexError, AttributeError) as e:
            logger.warning("AI extraction returned unusable output for document %s: %s", document_id, e)
            return None
        if not isinstance(parsed, dict):
            logger.warning("AI extraction returned non-object JSON for document %s", document_id)
            return None
        return parsed


def _confidence(raw) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, value))
