import io
from email.message import EmailMessage
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from freight_intake.config import DATA_DIR, Settings
from freight_intake.document_extractor.models import Document
from freight_intake.document_extractor.pipeline import ExtractionPipeline
from freight_intake.field_extraction.engine import FieldExtractionEngine
from freight_intake.mapping.config import load_mapping_config
from freight_intake.patterns.catalog import PatternCatalog
from freight_intake.services.storage import LocalStorage
from freight_intake.services.vehicle_reference import VehicleReference

QUOTE_EMAIL_BODY = """Hello,

Please quote shipping for a used BMW 7 Series 2019 from Antwerp to Lagos by RoRo.
Dimensions: 5,12m x 1,90m x 1,48m, weight 1.900 kg.
Pickup on 15/03/2025.

Best regards
Jan Peeters
ACME Logistics BV
Tel: +32 3 123 45 67
"""

QUOTE_PDF_LINES = [
    "Quotation request",
    "Shipper ACME Logistics BV Main Street 12 Antwerp Belgium",
    "Cargo: used BMW 7 Series 2019",
    "Dimensions 5,12m x 1,90m x 1,48m / 1.900 kg",
    "Shipment from Antwerp to Lagos by RoRo",
    "Contact: jan.peeters@acme-logistics.be",
]


def make_email(
    body: str,
    subject: str = "Quote request BMW 7 Series",
    sender: str = '"Jan Peeters" <jan.peeters@acme-logistics.be>',
) -> bytes:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = "quotes@freight-forwarder.be"
    message["Subject"] = subject
    message["Date"] = "Mon, 03 Mar 2025 10:00:00 +0100"
    message.set_content(body)
    return message.as_bytes()


def make_text_pdf(lines: list[str]) -> bytes:
    """Single-page PDF with a Helvetica text layer, one line per entry."""
    ops = ["BT", "/F1 11 Tf", "14 TL", "50 780 Td"]
    for line in lines:
        escaped = line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        ops.append(f"({escaped}) Tj T*")
    ops.append("ET")
    stream = "\n".join(ops).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 595 842] "
        b"/Resources << /Font << /F1 5 0 R >> >> /Contents 4 0 R >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"
    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref}\n%%EOF\n".encode()
    return bytes(out)


def make_png(size: tuple[int, int] = (120, 80)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    root = tmp_path / "uploads"
    root.mkdir()
    return Settings(
        _env_file=None,
        storage_root=str(root),
        ai_enabled=False,
        anthropic_api_key="",
    )


@pytest.fixture(scope="session")
def reference() -> VehicleReference:
    return VehicleReference.from_file(DATA_DIR / "vehicle_specs.json")


@pytest.fixture(scope="session")
def catalog() -> PatternCatalog:
    return PatternCatalog.build()


@pytest.fixture(scope="session")
def engine(catalog, reference) -> FieldExtractionEngine:
    return FieldExtractionEngine(catalog, reference)


@pytest.fixture(scope="session")
def mapping_config():
    return load_mapping_config(DATA_DIR / "field_mapping.json")


@pytest.fixture
def storage(test_settings) -> LocalStorage:
    return LocalStorage(test_settings.storage_root)


@pytest.fixture
def pipeline(test_settings, storage) -> ExtractionPipeline:
    return ExtractionPipeline.from_settings(test_settings, storage=storage)


@pytest.fixture
def make_document(test_settings):
    """Write bytes into the storage root and return a Document pointing at them."""

    def _make(filename: str, content: bytes, mime_type: str) -> Document:
        (Path(test_settings.storage_root) / filename).write_bytes(content)
        return Document(
            id=f"doc-{filename}",
            filename=filename,
            mime_type=mime_type,
            storage_location=filename,
        )

    return _make


@pytest.fixture
def quote_email() -> bytes:
    return make_email(QUOTE_EMAIL_BODY)


@pytest.fixture
def quote_pdf() -> bytes:
    return make_text_pdf(QUOTE_PDF_LINES)


@pytest.fixture
async def client(test_settings, pipeline, monkeypatch):
    from freight_intake.config import settings
    from freight_intake.dependencies import get_storage
    from freight_intake.main import app

    # The lifespan does not run under ASGITransport
    monkeypatch.setattr(settings, "storage_root", test_settings.storage_root)
    app.state.pipeline = pipeline
    app.dependency_overrides[get_storage] = lambda: LocalStorage(test_settings.storage_root)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
