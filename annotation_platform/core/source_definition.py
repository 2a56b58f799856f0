"""
Defines Pydantic models for annotation catalog entries loaded from YAML.
Each entry describes one annotation release (for example GENCODE v19 on
GRCh37): where to download it, where the local copy lives, and how
gffutils should import it.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from annotation_platform.core.config import BuildOptions


class MetadataDefinition(BaseModel):
    created_at: Optional[str] = None
    created_by: Optional[str] = None
    updated_at: Optional[str] = None
    tags: Optional[List[str]] = None


class AnnotationSourceDefinition(BaseModel):
    name: str
    version: str
    provider: str
    genome_build: str
    format: Literal["gtf", "gff3"] = "gtf"
    url: Optional[str] = None
    local_path: Optional[str] = None
    description: Optional[str] = None
    build_options: Dict[str, Any] = Field(default_factory=dict)
    metadata: Optional[MetadataDefinition] = None

    @field_validator("version", "genome_build", mode="before")
    @classmethod
    def coerce_to_str(cls, v):
        # YAML reads an unquoted release such as 19 as an int
        return str(v) if isinstance(v, (int, float)) else v

    @field_validator("build_options")
    @classmethod
    def check_build_options(cls, v):
        try:
            BuildOptions.from_dict(v)
        except TypeError as e:
            raise ValueError(f"Invalid build_options: {e}") from e
        return v

    def get_build_options(self) -> BuildOptions:
        """Return create_db options for this release, with catalog overrides applied."""
        return BuildOptions.from_dict(self.build_options)

    @property
    def label(self) -> str:
        return f"{self.name} v{self.version} ({self.genome_build})"
