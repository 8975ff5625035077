"""Data models for the anonymization engine.

Detector output and results are plain dataclasses. Anything that can arrive
from outside the process (entity mappings, deanonymize requests) is a
Pydantic model so it is validated on construction.
"""
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from pii_anonymizer.exceptions import InputValidationError


@dataclass(frozen=True)
class DetectedSpan:
    """Candidate sensitive span as reported by an entity detector."""

    start: int
    end: int
    entity_type: str
    score: float = None

    @property
    def length(self):
        return self.end - self.start


class Entity(BaseModel):
    """One anonymized span and the token that replaced it.

    Offsets point into the original, unmodified text. They are kept for
    debugging and auditing only; deanonymization keys on ``anonymized``.

    Attributes:
        original: The sensitive substring as it appeared in the input.
        anonymized: The placeholder token that replaced it, e.g. ``[PERSON]``.
        entity_type: Detector type label. Serialized as ``entityType``.
        start: Start offset in the original text (inclusive).
        end: End offset in the original text (exclusive).
    """

    model_config = ConfigDict(
        frozen=True,
        strict=True,
        populate_by_name=True,
        revalidate_instances="always",
    )

    original: str = Field(
        ...,
        description="The sensitive value as it appeared in the input",
    )
    anonymized: str = Field(
        ...,
        min_length=1,
        description="Placeholder token that replaced the value",
    )
    entity_type: str = Field(
        ...,
        alias="entityType",
        min_length=1,
        description="Type of the detected entity",
    )
    start: int = Field(
        ...,
        ge=0,
        description="Starting position of the entity in the original text",
    )
    end: int = Field(
        ...,
        description="Ending position of the entity in the original text",
    )

    @model_validator(mode="after")
    def _check_offsets(self):
        if self.start >= self.end:
            raise ValueError(
                f"Entity offsets must satisfy 0 <= start < end, "
                f"got start={self.start}, end={self.end}"
            )
        return self

    def to_dict(self):
        return self.model_dump(by_alias=True)

    @classmethod
    def from_dict(cls, payload):
        """
        Build an Entity from its wire shape.

        Args:
            payload (dict): ``{"original", "anonymized", "entityType", "start", "end"}``.
                            ``entity_type`` is accepted in place of ``entityType``.

        Raises:
            InputValidationError: If a field is missing, has the wrong type,
                                  or the offsets are not a valid half-open range.
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InputValidationError(describe_validation_error(e)) from e


class DeanonymizeRequest(BaseModel):
    """Request model for deanonymization.

    Attributes:
        text: Text containing placeholder tokens, usually a model reply.
        entities: Mapping returned when the prompt was anonymized.
    """

    text: str = Field(
        ...,
        strict=True,
        description="The anonymized text to deanonymize",
    )
    entities: list[Entity] = Field(
        default_factory=list,
        description="Entity mappings between original and anonymized values",
    )

    @classmethod
    def parse(cls, payload):
        """Validate a ``{"text", "entities"}`` payload, raising InputValidationError."""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InputValidationError(describe_validation_error(e)) from e


@dataclass(frozen=True)
class AnonymizationResult:
    """Output of a single anonymize call: the text to send out and how to undo it."""

    anonymized_text: str
    mapping: tuple = field(default_factory=tuple)

    @property
    def entities_found(self):
        return len(self.mapping) > 0

    def to_dict(self):
        return {
            'anonymizedText': self.anonymized_text,
            'entitiesFound': self.entities_found,
            'entities': [entity.to_dict() for entity in self.mapping],
        }


_MAPPING_ADAPTER = TypeAdapter(list[Entity])


def describe_validation_error(error):
    """Flatten a Pydantic ValidationError into one readable line."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        problems.append(f"'{location}': {item['msg']}" if location else item["msg"])
    return "Invalid entity mapping: " + "; ".join(problems)


def parse_mapping(payload, required=False):
    """
    Validate an entity mapping.

    Wire-shape dicts and Entity objects are both validated; an Entity built
    with ``model_construct`` gets no free pass.

    Args:
        payload (list | None): Sequence of wire-shape entity dicts (or Entity objects).
        required (bool): Reject an absent or empty mapping. Use this when the
                         caller knows entities were found during anonymization.

    Returns:
        tuple: Immutable tuple of Entity objects, in input order.

    Raises:
        InputValidationError: If the payload is malformed, or empty while required.

    Example:
        >>> parse_mapping([{"original": "James Bond", "anonymized": "[PERSON]",
        ...                 "entityType": "PERSON", "start": 11, "end": 21}])
        (Entity(original='James Bond', anonymized='[PERSON]', ...),)
    """
    if payload is None:
        payload = []
    if not isinstance(payload, (list, tuple)):
        raise InputValidationError("Entity mappings must be a list")
    if required and not payload:
        raise InputValidationError("Entity mappings are required for deanonymization")

    try:
        return tuple(_MAPPING_ADAPTER.validate_python(list(payload)))
    except ValidationError as e:
        raise InputValidationError(describe_validation_error(e)) from e
