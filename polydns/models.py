"""Vendor-neutral DNS record model."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MXContent(BaseModel):
    """Structured content of an MX record."""

    model_config = ConfigDict(frozen=True)

    priority: int = Field(ge=0, le=65535)
    exchange: str = Field(min_length=1)


class SRVContent(BaseModel):
    """Structured content of an SRV record."""

    model_config = ConfigDict(frozen=True)

    priority: int = Field(ge=0, le=65535)
    weight: int = Field(ge=0, le=65535)
    port: int = Field(ge=0, le=65535)
    target: str = Field(min_length=1)


class CAAContent(BaseModel):
    """Structured content of a CAA record."""

    model_config = ConfigDict(frozen=True)

    flags: int = Field(default=0, ge=0, le=255)
    tag: str = Field(min_length=1)
    value: str


StructuredContent = MXContent | SRVContent | CAAContent
RecordContent = str | MXContent | SRVContent | CAAContent

# Record types that carry sub-fields, and the model describing them
STRUCTURED_TYPES: dict[str, type[BaseModel]] = {
    "MX": MXContent,
    "SRV": SRVContent,
    "CAA": CAAContent,
}


class DnsRecord(BaseModel):
    """A DNS record as returned by any provider.

    ``name`` is relative to ``domain`` and is an empty string for the zone
    apex. ``id`` is assigned by the vendor and must be treated as opaque.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    domain: str
    name: str = ""
    type: str
    content: RecordContent
    ttl: int


class ConfigOption(BaseModel):
    """Describes one provider configuration option."""

    model_config = ConfigDict(frozen=True)

    type: str = "string"
    required: bool = False
    description: str = ""
    sensitive: bool = False


ConfigurationSchema = dict[str, ConfigOption]


def schema_as_dict(schema: ConfigurationSchema) -> dict[str, dict[str, Any]]:
    """Render a configuration schema as plain mappings for a settings store."""
    return {key: option.model_dump() for key, option in schema.items()}


def normalize_type(record_type: str) -> str:
    """Normalize a record type for comparison and transmission."""
    return record_type.strip().upper()


def normalize_domain(domain: str) -> str:
    """Strip surrounding whitespace and the trailing root dot from a domain."""
    return domain.strip().rstrip(".").lower()


def normalize_name(name: str | None) -> str:
    """Normalize a relative record name; ``@`` and ``""`` both mean the apex.

    DNS names are case-insensitive, so names are lower-cased.
    """
    name = (name or "").strip().rstrip(".").lower()
    return "" if name == "@" else name


def coerce_content(record_type: str | None, content: Any) -> RecordContent:
    """Validate caller content against the record type.

    Scalars are passed through untouched. Mappings and structured models are
    only accepted for record types that have a structured form. When the
    record type is unknown (partial updates), a mapping is matched against
    each structured form in turn.

    Raises:
        ValueError: If the content does not fit the record type.
    """
    if isinstance(content, str):
        if not content.strip():
            raise ValueError("content must not be empty")
        return content

    if record_type is None:
        if isinstance(content, (MXContent, SRVContent, CAAContent)):
            return content
        if isinstance(content, Mapping):
            for model in STRUCTURED_TYPES.values():
                try:
                    return model.model_validate(dict(content))
                except ValidationError:
                    continue
            raise ValueError("content does not match any structured record form")
        raise ValueError(f"unsupported content type {type(content).__name__}")

    record_type = normalize_type(record_type)
    model = STRUCTURED_TYPES.get(record_type)
    if model is None:
        raise ValueError(f"{record_type} records take scalar content")

    if isinstance(content, model):
        return content
    if isinstance(content, BaseModel):
        raise ValueError(
            f"{type(content).__name__} is not valid content for {record_type} records"
        )
    if not isinstance(content, Mapping):
        raise ValueError(f"unsupported content type {type(content).__name__}")

    try:
        return model.model_validate(dict(content))
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ValueError(f"invalid {record_type} content: {fields}") from None


# Presentation-format helpers shared by vendors that carry rdata as text


def caa_to_text(content: CAAContent) -> str:
    """Render CAA content as ``flags tag "value"``."""
    value = content.value.replace('"', '\\"')
    return f'{content.flags} {content.tag} "{value}"'


def caa_from_text(text: str) -> CAAContent | None:
    """Parse ``flags tag "value"``; returns None if the text does not fit."""
    parts = text.strip().split(" ", 2)
    if len(parts) != 3 or not parts[0].isdigit():
        return None
    value = parts[2].strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1].replace('\\"', '"')
    return CAAContent(flags=int(parts[0]), tag=parts[1], value=value)


def srv_from_text(text: str, priority: int | None = None) -> SRVContent | None:
    """Parse ``[priority] weight port target``; returns None if it does not fit.

    When ``priority`` is given, the text is expected without it.
    """
    parts = text.split()
    if priority is None:
        if len(parts) != 4:
            return None
        priority_text, *parts = parts
        if not priority_text.isdigit():
            return None
        priority = int(priority_text)
    if len(parts) != 3 or not (parts[0].isdigit() and parts[1].isdigit()):
        return None
    return SRVContent(
        priority=priority, weight=int(parts[0]), port=int(parts[1]), target=parts[2]
    )


def mx_from_text(text: str) -> MXContent | None:
    """Parse ``priority exchange``; returns None if it does not fit."""
    parts = text.split()
    if len(parts) != 2 or not parts[0].isdigit():
        return None
    return MXContent(priority=int(parts[0]), exchange=parts[1])
