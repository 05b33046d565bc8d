"""
Configuration-driven field mapper.

map_fields() is a pure function of (extracted tree, configuration): two runs
on identical input differ only in formatted_at. Per target field:

  1. sources: first non-blank path (nested {sources, default} blocks allowed)
  2. transform, then validate (a failing value is dropped with a warning)
  3. template / fallback_template built from components resolved the same way
  4. static default
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from dateutil import parser as date_parser

from freight_intake.exceptions import ValidationFailed
from freight_intake.mapping.config import FieldSpec, MappingConfig, SourceBlock, ValidationRule
from freight_intake.mapping.paths import MISSING, is_blank, resolve
from freight_intake.mapping.templates import placeholders, render_template
from freight_intake.mapping.transforms import DimensionResolver, TransformContext, apply_transform

logger = logging.getLogger("freight.mapping")


@dataclass
class MappingResult:
    record: dict
    warnings: list[str] = field(default_factory=list)
    failures: list[ValidationFailed] = field(default_factory=list)
    provenance: dict[str, str] = field(default_factory=dict)


class FieldMapper:
    """Applies one immutable MappingConfig. Safe to share across concurrent requests."""

    def __init__(self, config: MappingConfig, dimensions: DimensionResolver | None = None):
        self.config = config
        self.dimensions = dimensions

    def map_fields(self, extracted: dict, document_id: str | None = None) -> dict:
        """Flat target-field map plus formatted_at and mapping_version."""
        return self.map(extracted, document_id=document_id).record

    def map(self, extracted: dict, document_id: str | None = None) -> MappingResult:
        ctx = TransformContext(
            tables=self.config.transformations,
            extracted=extracted,
            dimensions=self.dimensions,
        )
        result = MappingResult(record={})

        for name, spec in self.config.iter_fields():
            value, how = self._resolve_field(name, spec, extracted, ctx, result, document_id)
            result.record[name] = value
            if how:
                result.provenance[name] = how

        result.record["mapping_version"] = self.config.version
        result.record["formatted_at"] = datetime.now(timezone.utc).isoformat()
        return result

    def _resolve_field(
        self,
        name: str,
        spec: FieldSpec,
        extracted: dict,
        ctx: TransformContext,
        result: MappingResult,
        document_id: str | None,
    ) -> tuple[Any, str | None]:
        value = self._resolve_value(name, spec, extracted, ctx, result, document_id)
        if not is_blank(value):
            return value, "sources"

        for kind, template in (("template", spec.template), ("fallback_template", spec.fallback_template)):
            if not template:
                continue
            values = {
                placeholder: self._resolve_component(placeholder, spec, extracted, ctx, result, document_id)
                for placeholder in placeholders(template)
            }
            rendered = render_template(template, values)
            if rendered:
                return rendered, kind

        if spec.default is not None:
            return spec.default, "default"
        return None, None

    def _resolve_value(
        self,
        name: str,
        spec: FieldSpec,
        extracted: dict,
        ctx: TransformContext,
        result: MappingResult,
        document_id: str | None,
    ) -> Any:
        """sources -> transform -> validate. Returns MISSING when nothing survives."""
        if spec.sources:
            raw = resolve_sources(extracted, spec.sources)
        elif spec.components and not spec.template:
            # Components bag handed to the transform (format_cargo, format_dimensions, ...)
            bag = {
                key: self._resolve_component(key, spec, extracted, ctx, result, document_id)
                for key in spec.components
            }
            raw = bag if any(not is_blank(v) for v in bag.values()) else MISSING
        else:
            return MISSING

        if is_blank(raw):
            return MISSING

        value = apply_transform(spec.transform, raw, spec.params, ctx)
        if is_blank(value):
            return MISSING

        rule = self.config.rule(spec.validation)
        if rule is not None:
            try:
                check_rule(rule, value, field=name, document_id=document_id)
            except ValidationFailed as e:
                result.failures.append(e)
                result.warnings.append(f"{name}: {e.message}")
                logger.info("Dropped field %s for document %s: %s", name, document_id, e.message)
                return MISSING
        return value

    def _resolve_component(
        self,
        key: str,
        spec: FieldSpec,
        extracted: dict,
        ctx: TransformContext,
        result: MappingResult,
        document_id: str | None,
    ) -> Any:
        component = spec.components.get(key)
        if component is None:
            # Bare placeholder: a dotted path into the extracted tree
            value = resolve(extracted, key)
            return None if is_blank(value) else value
        if isinstance(component, str):
            value = resolve(extracted, component)
            return None if is_blank(value) else value
        value = self._resolve_value(key, component, extracted, ctx, result, document_id)
        if is_blank(value):
            return component.default
        return value

    def get_mapping_summary(self) -> dict:
        sections = {
            section: sorted(fields) for section, fields in self.config.field_mappings.items()
        }
        transforms = sorted({
            spec.transform for _, spec in self.config.iter_fields() if spec.transform
        })
        return {
            "version": self.config.version,
            "sections": sections,
            "field_count": len(self.config.target_fields),
            "required_fields": self.config.required_fields,
            "transforms": transforms,
            "validation_rules": sorted(self.config.validation_rules),
            "lookup_tables": sorted(self.config.transformations),
        }


def resolve_sources(extracted: dict, sources: list) -> Any:
    """First non-blank value across paths and nested {sources, default} blocks."""
    for source in sources:
        if isinstance(source, SourceBlock):
            value = resolve_sources(extracted, source.sources)
            if is_blank(value) and source.default is not None:
                value = source.default
        else:
            value = resolve(extracted, source)
        if not is_blank(value):
            return value
    return MISSING


def check_rule(rule: ValidationRule, value: Any, field: str | None = None, document_id: str | None = None) -> None:
    """Raise ValidationFailed if value violates rule."""
    message = None
    if rule.type == "regex":
        if not re.search(rule.pattern, str(value)):
            message = rule.message or f"value {value!r} does not match {rule.pattern}"
    elif rule.type == "numeric":
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = None
        if number is None:
            message = rule.message or f"value {value!r} is not numeric"
        elif rule.min is not None and number < rule.min:
            message = rule.message or f"value {number} below minimum {rule.min}"
        elif rule.max is not None and number > rule.max:
            message = rule.message or f"value {number} above maximum {rule.max}"
    elif rule.type == "date":
        try:
            date_parser.parse(str(value))
        except (ValueError, OverflowError):
            message = rule.message or f"value {value!r} is not a date"

    if message:
        raise ValidationFailed(message, rule=rule.type, value=value, field=field, document_id=document_id)
