"""Type definitions for gadgets.

This module defines the Pydantic models for gadget descriptors (the schema
the runtime reports for an image) and for running gadget instances. Field
aliases follow the camelCase names used on the wire and in the cache file.
"""

from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

# Field annotation keys used by gadget data sources
DESCRIPTION_ANNOTATION = "description"
VALUE_ONE_OF_ANNOTATION = "value.one-of"


class GadgetParam(BaseModel):
    """A parameter declared by a gadget."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., description="Parameter key")
    prefix: str = Field("", description="Namespace prefix, e.g. 'operator.oci.ebpf.'")
    default_value: str = Field("", alias="defaultValue", description="Default value")
    description: str = Field("", description="Human-readable description")

    @property
    def full_key(self) -> str:
        """Key as used in parameter maps (prefix + key)."""
        return self.prefix + self.key


class GadgetField(BaseModel):
    """A field of a gadget data source."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    full_name: str = Field(..., alias="fullName", description="Fully qualified field name")
    annotations: dict[str, str] = Field(default_factory=dict, description="Field annotations")

    @property
    def description(self) -> str:
        return self.annotations.get(DESCRIPTION_ANNOTATION, "")

    @property
    def possible_values(self) -> str:
        return self.annotations.get(VALUE_ONE_OF_ANNOTATION, "")


class GadgetDataSource(BaseModel):
    """A data source emitted by a gadget."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field("", description="Data source name")
    fields: list[GadgetField] = Field(default_factory=list, description="Declared fields")


class GadgetMetadata(BaseModel):
    """Structured metadata embedded in a gadget image."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field("", description="Gadget name, e.g. 'trace dns'")
    description: str = Field("", description="Gadget description")


class GadgetDescriptor(BaseModel):
    """Schema reported by the runtime for a gadget image.

    Descriptors are immutable once fetched; a re-fetch replaces the whole
    descriptor.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    image_name: str = Field(..., alias="imageName", description="Image reference")
    params: list[GadgetParam] = Field(default_factory=list, description="Declared parameters")
    data_sources: list[GadgetDataSource] = Field(
        default_factory=list, alias="dataSources", description="Declared data sources"
    )
    metadata: str = Field("", description="Embedded YAML metadata")

    def decode_metadata(self) -> GadgetMetadata:
        """Decode the embedded YAML metadata.

        Returns:
            Parsed metadata.

        Raises:
            ValueError: If the metadata is not a YAML mapping.
        """
        try:
            data = yaml.safe_load(self.metadata) if self.metadata else {}
        except yaml.YAMLError as e:
            raise ValueError(f"unmarshalling gadget metadata: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("unmarshalling gadget metadata: expected a mapping")
        return GadgetMetadata.model_validate(data)

    def default_params(self) -> dict[str, str]:
        """Parameter map pre-filled with every declared default."""
        return {p.full_key: p.default_value for p in self.params}

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with wire (camelCase) keys."""
        return self.model_dump(by_alias=True)


class GadgetInstance(BaseModel):
    """A detached gadget execution running on the backend."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., description="Instance ID (hex)")
    gadget_image: str = Field(..., alias="gadgetImage", description="Image reference")
    params: str = Field("", description="Non-empty parameters as k=\"v\" pairs")
    created_by: str = Field("", alias="createdBy", description="Creator tag value")
    started_at: str = Field("", alias="startedAt", description="Start time (RFC 3339)")

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize with wire keys, omitting empty optional fields."""
        data = self.model_dump(by_alias=True)
        for key in ("createdBy", "startedAt"):
            if not data[key]:
                del data[key]
        return data
