"""
Model metadata registry for llmbridge.

Validates the model catalog once, as a whole, and exposes it as a frozen
lookup of ModelDescriptor entries and per-family model sets.
"""

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from llmbridge.config.loader import load_yaml_file
from llmbridge.config.merger import deep_merge
from llmbridge.config.paths import expand_path, get_default_catalog_path
from llmbridge.config.schema import Config
from llmbridge.providers.exceptions import BadConfigurationError, MetadataValidationError
from llmbridge.providers.models import (
    UNSPECIFIED_MODEL,
    LLMPurpose,
    ModelDescriptor,
    ModelQuality,
    ModelSet,
    ProviderFamily,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Raw catalog schema
# =============================================================================


class _ModelEntry(BaseModel):
    """One row of the raw model table."""

    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    model_id: str
    purpose: LLMPurpose
    max_total_tokens: int = Field(gt=0, strict=True)
    family: ProviderFamily
    max_completion_tokens: int | None = Field(default=None, gt=0, strict=True)
    dimensions: int | None = Field(default=None, gt=0, strict=True)

    @field_validator("model_id")
    @classmethod
    def _model_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("model_id must not be blank")
        return value

    @field_validator("purpose", "family")
    @classmethod
    def _not_placeholder(cls, value: LLMPurpose | ProviderFamily) -> LLMPurpose | ProviderFamily:
        if value.value == "n/a":
            raise ValueError("'n/a' is reserved for the unspecified model")
        return value

    @model_validator(mode="after")
    def _purpose_fields(self) -> "_ModelEntry":
        if self.purpose is LLMPurpose.EMBEDDINGS:
            if self.dimensions is None:
                raise ValueError("dimensions is required for an embeddings model")
            if self.max_completion_tokens is not None:
                raise ValueError("max_completion_tokens is only valid for a completions model")
        else:
            if self.max_completion_tokens is None:
                raise ValueError("max_completion_tokens is required for a completions model")
            if self.dimensions is not None:
                raise ValueError("dimensions is only valid for an embeddings model")
            if self.max_completion_tokens > self.max_total_tokens:
                raise ValueError(
                    f"max_completion_tokens ({self.max_completion_tokens}) exceeds "
                    f"max_total_tokens ({self.max_total_tokens})"
                )
        return self


class _ModelSetEntry(BaseModel):
    """Model keys configured for one provider family."""

    model_config = ConfigDict(extra="forbid")

    embeddings: str
    primary_completion: str
    secondary_completion: str | None = None


class _Catalog(BaseModel):
    """The whole raw catalog."""

    model_config = ConfigDict(extra="forbid")

    models: dict[str, _ModelEntry] = Field(min_length=1)
    families: dict[ProviderFamily, _ModelSetEntry] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _model_sets_reference_models(self) -> "_Catalog":
        for family, model_set in self.families.items():
            if family is ProviderFamily.N_A:
                raise ValueError("'n/a' cannot have a model set")
            slots = (
                ("embeddings", model_set.embeddings, LLMPurpose.EMBEDDINGS),
                ("primary_completion", model_set.primary_completion, LLMPurpose.COMPLETIONS),
                ("secondary_completion", model_set.secondary_completion, LLMPurpose.COMPLETIONS),
            )
            for slot, model_key, purpose in slots:
                if model_key is None:
                    continue
                entry = self.models.get(model_key)
                if entry is None:
                    raise ValueError(f"{family.value}.{slot} names unknown model '{model_key}'")
                if entry.purpose is not purpose:
                    raise ValueError(
                        f"{family.value}.{slot} needs a {purpose.value} model, "
                        f"'{model_key}' is {entry.purpose.value}"
                    )
        return self


def _to_metadata_error(error: ValidationError) -> MetadataValidationError:
    first = error.errors()[0]
    loc = [str(part) for part in first.get("loc", ())]
    model_key = loc[1] if len(loc) > 1 and loc[0] == "models" else None
    field = loc[2] if len(loc) > 2 and loc[0] == "models" else None
    return MetadataValidationError(
        f"Model catalog failed validation: {error}", model_key=model_key, field=field
    )


# =============================================================================
# Registry
# =============================================================================


class ModelRegistry:
    """
    Frozen lookup of model capability facts.

    Built once with load() and shared read-only by every component.
    load() is the only supported way to construct one: the constructor
    stores what it is given without validating it.
    """

    def __init__(
        self,
        *,
        descriptors: Mapping[str, ModelDescriptor],
        model_sets: Mapping[ProviderFamily, ModelSet] | None = None,
    ):
        self._descriptors: Mapping[str, ModelDescriptor] = MappingProxyType(dict(descriptors))
        self._model_sets: Mapping[ProviderFamily, ModelSet] = MappingProxyType(
            dict(model_sets or {})
        )

    @classmethod
    def load(cls, raw_table: Mapping[str, Any]) -> "ModelRegistry":
        """
        Validate a raw catalog and build the registry.

        Every entry is validated before any is exposed; one bad entry fails
        the whole load.

        Args:
            raw_table: Mapping with a "models" section and an optional
                "families" section.

        Returns:
            Frozen ModelRegistry.

        Raises:
            MetadataValidationError: If any entry is invalid.
        """
        try:
            catalog = _Catalog.model_validate(dict(raw_table))
        except ValidationError as e:
            raise _to_metadata_error(e) from e

        descriptors = {
            key: ModelDescriptor(
                key=key,
                provider_model_id=entry.model_id,
                purpose=entry.purpose,
                max_total_tokens=entry.max_total_tokens,
                family=entry.family,
                max_completion_tokens=entry.max_completion_tokens,
                dimensions=entry.dimensions,
            )
            for key, entry in catalog.models.items()
        }
        model_sets = {
            family: ModelSet(
                embeddings=entry.embeddings,
                primary_completion=entry.primary_completion,
                secondary_completion=entry.secondary_completion,
            )
            for family, entry in catalog.families.items()
        }

        logger.debug(f"Loaded {len(descriptors)} models for {len(model_sets)} provider families")
        return cls(descriptors=descriptors, model_sets=model_sets)

    def get(self, model_key: str | None) -> ModelDescriptor:
        """
        Get a model descriptor.

        Args:
            model_key: Model key from the catalog.

        Returns:
            The descriptor, or the unspecified descriptor for unknown keys.
        """
        if model_key is None:
            return UNSPECIFIED_MODEL
        descriptor = self._descriptors.get(model_key)
        if descriptor is None:
            logger.debug(f"No metadata for model '{model_key}', using unspecified limits")
            return UNSPECIFIED_MODEL
        return descriptor

    def model_set(self, family: ProviderFamily) -> ModelSet:
        """
        Get the model set configured for a provider family.

        Raises:
            BadConfigurationError: If the family has no model set.
        """
        model_set = self._model_sets.get(family)
        if model_set is None:
            raise BadConfigurationError(f"No models configured for provider family '{family.value}'")
        return model_set

    def describe_models(self, model_set: ModelSet) -> list[str]:
        """Provider model ids for embeddings, primary and secondary completions."""
        secondary = (
            self.get(model_set.secondary_completion).provider_model_id
            if model_set.secondary_completion
            else "n/a"
        )
        return [
            self.get(model_set.embeddings).provider_model_id,
            self.get(model_set.primary_completion).provider_model_id,
            secondary,
        ]

    def available_qualities(self, model_set: ModelSet) -> list[ModelQuality]:
        """Completion qualities a model set can serve, primary first."""
        qualities = [ModelQuality.PRIMARY]
        if model_set.secondary_completion:
            qualities.append(ModelQuality.SECONDARY)
        return qualities

    @property
    def families(self) -> list[ProviderFamily]:
        return list(self._model_sets)

    def keys(self) -> list[str]:
        return list(self._descriptors)

    def __contains__(self, model_key: object) -> bool:
        return model_key in self._descriptors

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._descriptors.values())

    def __len__(self) -> int:
        return len(self._descriptors)


def resolve_family(name: str | ProviderFamily | None) -> ProviderFamily:
    """
    Resolve a configured provider family name.

    Raises:
        BadConfigurationError: If no family is configured or the name is unknown.
    """
    if isinstance(name, ProviderFamily):
        return name
    if not name:
        raise BadConfigurationError("No provider family configured")
    try:
        family = ProviderFamily(name.lower())
    except ValueError as e:
        known = ", ".join(f.value for f in ProviderFamily if f is not ProviderFamily.N_A)
        raise BadConfigurationError(f"Unknown provider family '{name}' (known: {known})") from e
    if family is ProviderFamily.N_A:
        raise BadConfigurationError("'n/a' is not a usable provider family")
    return family


def load_model_catalog(config: Config | None = None) -> ModelRegistry:
    """
    Load the model catalog into a registry.

    Reads the packaged models.yaml (or catalog.path when configured),
    deep-merges catalog.overrides over it, then validates the result.
    When a family is configured it must name a model set in the catalog.

    Args:
        config: Configuration; defaults apply when omitted.

    Returns:
        Frozen ModelRegistry.

    Raises:
        ConfigurationError: If the catalog file cannot be read or parsed.
        MetadataValidationError: If the merged catalog is invalid.
        BadConfigurationError: If the configured family is unknown or has
            no model set.
    """
    config = config or Config()
    path = expand_path(config.catalog.path) if config.catalog.path else get_default_catalog_path()

    raw_table = load_yaml_file(path)
    if config.catalog.overrides:
        raw_table = deep_merge(raw_table, config.catalog.overrides)

    logger.info(f"Loading model catalog from {path}")
    registry = ModelRegistry.load(raw_table)
    if config.family:
        registry.model_set(resolve_family(config.family))
    return registry
