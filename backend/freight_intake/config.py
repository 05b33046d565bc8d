from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # App
    environment: str = "development"
    log_level: str = "INFO"
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    # Anthropic (optional enhancement)
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-20250514"
    claude_max_tokens: int = 4096
    ai_enabled: bool = True
    ai_timeout_seconds: float = 30.0
    ai_confidence_threshold: float = 0.7

    # Storage
    storage_root: str = "/app/uploads"
    max_upload_size_mb: int = 50

    # PDF analysis
    pdf_large_threshold_bytes: int = 5_000_000
    pdf_very_large_threshold_bytes: int = 10_000_000
    pdf_min_text_length: int = 100
    pdf_render_resolution: int = 72

    # External rasterizer / OCR binaries
    pdftotext_binary: str = "pdftotext"
    tesseract_binary: str = "tesseract"
    ocr_language: str = "eng+deu+fra+nld"
    subprocess_timeout_seconds: float = 120.0

    # Soft per-extraction memory budget
    memory_warning_threshold_mb: int = 64

    # Mapping / reference data
    mapping_config_path: str = str(DATA_DIR / "field_mapping.json")
    vehicle_reference_path: str = str(DATA_DIR / "vehicle_specs.json")

    # Batch processing
    max_concurrent_documents: int = 4


settings = Settings()
