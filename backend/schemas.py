"""Data models for the synteny adapter."""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire; both accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Region(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    ref_name: str
    start: int = Field(ge=0)
    end: int
    assembly_name: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self) -> "Region":
        if self.start >= self.end:
            raise ValueError(f"region start ({self.start}) must be less than end ({self.end})")
        return self

    def overlaps(self, feature: "SyntenyFeature") -> bool:
        return (
            feature.ref_name == self.ref_name
            and feature.start < self.end
            and feature.end > self.start
        )


class FieldMapping(CamelModel):
    """Dotted paths locating each logical field inside a response."""
    alignments_field: str = "alignments"
    query_name_field: str = "query.name"
    query_start_field: str = "query.start"
    query_end_field: str = "query.end"
    query_length_field: str = "query.length"
    target_name_field: str = "target.name"
    target_start_field: str = "target.start"
    target_end_field: str = "target.end"
    target_length_field: str = "target.length"
    strand_field: str = "strand"
    num_residue_matches_field: str = "numResidueMatches"
    alignment_block_length_field: str = "alignmentBlockLength"
    identity_field: str = "identity"
    mapping_quality_field: str = "mappingQuality"


class AdapterConfig(FieldMapping):
    url: Optional[str] = None
    method: str = "GET"
    request_headers: dict[str, str] = {}
    request_timeout: float = 30.0  # seconds
    assembly_names: list[str] = []
    refresh_interval: int = Field(default=0, ge=0)  # ms, 0 = disabled
    cache_timeout: int = Field(default=60000, ge=0)  # ms, 0 = no cache
    append_region_params: bool = True
    client_side_filter: bool = False

    @field_validator("method")
    @classmethod
    def check_method(cls, value: str) -> str:
        method = value.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"unsupported HTTP method: {value}")
        return method

    @field_validator("assembly_names")
    @classmethod
    def check_assembly_names(cls, value: list[str]) -> list[str]:
        # The flip rule only knows how to orient a pair of assemblies
        if value and len(value) != 2:
            raise ValueError(f"assemblyNames must hold exactly two names, got {len(value)}")
        return value

    def field_mapping(self) -> FieldMapping:
        return FieldMapping(**{name: getattr(self, name) for name in FieldMapping.model_fields})


class Mate(CamelModel):
    ref_name: str
    start: int
    end: int
    assembly_name: Optional[str] = None


class SyntenyFeature(CamelModel):
    unique_id: str
    ref_name: str
    start: int
    end: int
    assembly_name: Optional[str] = None
    strand: Literal[1, -1]
    mate: Mate
    type: str = "match"
    synteny_id: int  # index within the source batch
    name: str = ""
    query_length: Optional[int] = None
    target_length: Optional[int] = None
    num_matches: Optional[int] = None
    block_len: Optional[int] = None
    mapping_quality: Optional[int] = None
    identity: float = 0.0

    @model_validator(mode="after")
    def check_ranges(self) -> "SyntenyFeature":
        if self.start >= self.end:
            raise ValueError("feature start must be less than end")
        if self.mate.start >= self.mate.end:
            raise ValueError("mate start must be less than end")
        return self
