"""
Mapping configuration schema and loader.

The configuration is a versioned JSON document with three sections:
field_mappings (section -> target field -> spec), transformations (lookup
tables used by named transforms) and validation_rules. It is validated with
pydantic once at load; any problem is a ConfigurationError.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from freight_intake.exceptions import ConfigurationError

logger = logging.getLogger("freight.mapping")


class SourceBlock(BaseModel):
    """Nested fallback block inside a sources list."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    sources: list["str | SourceBlock"] = Field(default_factory=list)
    default: Any = None


class FieldSpec(BaseModel):
    """How one target field (or template component) is produced."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    sources: list[str | SourceBlock] = Field(default_factory=list, description="Ordered path lookups")
    transform: str | None = Field(None, description="Named transform applied to the resolved value")
    params: dict[str, Any] = Field(default_factory=dict, description="Transform parameters")
    validation: str | dict | None = Field(None, alias="validate", description="Rule name or inline rule")
    template: str | None = Field(None, description="Format string with {component} placeholders")
    fallback_template: str | None = None
    components: dict[str, "str | FieldSpec"] = Field(default_factory=dict)
    default: Any = None
    required: bool = False


SourceBlock.model_rebuild()
FieldSpec.model_rebuild()


class ValidationRule(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["regex", "numeric", "date"]
    pattern: str | None = None
    min: float | None = None
    max: float | None = None
    message: str | None = None

    @model_validator(mode="after")
    def _check_pattern(self) -> "ValidationRule":
        if self.type == "regex":
            if not self.pattern:
                raise ValueError("regex rule requires a pattern")
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"invalid regex {self.pattern!r}: {e}") from e
        return self


class MappingConfig(BaseModel):
    """Immutable, validated mapping configuration."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    version: str
    field_mappings: dict[str, dict[str, FieldSpec]]
    transformations: dict[str, Any] = Field(default_factory=dict)
    validation_rules: dict[str, ValidationRule] = Field(default_factory=dict)

    @field_validator("field_mappings")
    @classmethod
    def _unique_targets(cls, value: dict[str, dict[str, FieldSpec]]) -> dict[str, dict[str, FieldSpec]]:
        seen: set[str] = set()
        for section, fields in value.items():
            for name in fields:
                if name in seen:
                    raise ValueError(f"target field {name!r} defined twice (section {section!r})")
                seen.add(name)
        return value

    @model_validator(mode="after")
    def _check_rule_references(self) -> "MappingConfig":
        for name, spec in self.iter_fields():
            for rule in _rule_refs(spec):
                if rule not in self.validation_rules:
                    raise ValueError(f"field {name!r} references unknown validation rule {rule!r}")
        return self

    def iter_fields(self):
        for fields in self.field_mappings.values():
            yield from fields.items()

    def rule(self, ref: str | dict | None) -> ValidationRule | None:
        if ref is None:
            return None
        if isinstance(ref, dict):
            return ValidationRule.model_validate(ref)
        return self.validation_rules.get(ref)

    @property
    def target_fields(self) -> list[str]:
        return [name for name, _ in self.iter_fields()]

    @property
    def required_fields(self) -> list[str]:
        return [name for name, spec in self.iter_fields() if spec.required]


def _rule_refs(spec: FieldSpec) -> list[str]:
    refs = [spec.validation] if isinstance(spec.validation, str) else []
    for component in spec.components.values():
        if isinstance(component, FieldSpec):
            refs.extend(_rule_refs(component))
    return refs


def load_mapping_config(path: str | Path) -> MappingConfig:
    """Load and validate the mapping configuration.

    Raises:
        ConfigurationError: File missing, not JSON, or schema-invalid.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Mapping configuration not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Mapping configuration is not valid JSON: {e}") from e
    return parse_mapping_config(raw, source=str(path))


def parse_mapping_config(raw: dict, source: str = "<memory>") -> MappingConfig:
    try:
        config = MappingConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Mapping configuration {source} is invalid: {e}") from e

    # Inline rule dicts are validated here so they cannot fail per request
    for name, spec in config.iter_fields():
        if isinstance(spec.validation, dict):
            try:
                ValidationRule.model_validate(spec.validation)
            except ValidationError as e:
                raise ConfigurationError(f"Invalid inline rule for {name}: {e}", field=name) from e

    logger.info(
        "Loaded mapping configuration v%s from %s: %d target fields",
        config.version, source, len(config.target_fields),
    )
    return config
