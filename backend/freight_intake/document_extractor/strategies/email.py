import asyncio

from freight_intake.document_extractor.email_parser import parse_email
from freight_intake.document_extractor.models import Document, ExtractionResult
from freight_intake.document_extractor.strategies.base import ExtractionStrategy
from freight_intake.field_extraction.sources import ExtractionContext

EMAIL_MIME_TYPES = {"message/rfc822"}


class EmailStrategy(ExtractionStrategy):
    """Headers are the metadata source, the body is pattern text, quoted replies are history."""

    name = "email_extraction"
    priority = 100

    def supports(self, document: Document) -> bool:
        return document.normalized_mime in EMAIL_MIME_TYPES or document.extension == "eml"

    async def _extract(self, document: Document) -> ExtractionResult:
        content = await self.read(document)
        parsed = await asyncio.to_thread(parse_email, content)
        self.logger.info(
            "Parsed email %s: from=%s subject=%s history=%d attachments=%d",
            document.id,
            parsed.headers.get("from"),
            parsed.headers.get("subject"),
            len(parsed.messages),
            len(parsed.attachments),
        )

        context = ExtractionContext(
            text=parsed.full_text,
            metadata=parsed.headers,
            messages=parsed.messages,
            document_id=document.id,
        )
        data, metadata = self.run_fields(context)
        data, metadata = await self.enhance(context, data, metadata)
        return self.result(
            data,
            metadata,
            document_type="email",
            email_metadata={k: parsed.headers.get(k) for k in ("from", "to", "subject", "date")},
            attachments=parsed.attachments,
        )
