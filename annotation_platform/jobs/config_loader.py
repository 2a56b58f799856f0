from typing import Any, Dict, List, Optional
import logging

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from annotation_platform.core.config import BuildOptions, PragmaSettings, get_pragma_preset

logger = logging.getLogger(__name__)

# --- Pydantic Models for Configuration Validation ---

class BaseConfigModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class AnnotationSourceRef(BaseConfigModel):
    name: str
    version: Optional[str] = None

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v):
        return str(v) if isinstance(v, (int, float)) else v


class DatabaseConfig(BaseConfigModel):
    db_path: str
    # Either a catalog entry or an explicit file path; only needed when building
    annotation_source: Optional[AnnotationSourceRef] = None
    annotation_path: Optional[str] = None
    build: bool = False
    force: bool = False
    build_options: Dict[str, Any] = Field(default_factory=dict)
    pragma_preset: str = "default"
    pragmas: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("build_options")
    @classmethod
    def check_build_options(cls, v):
        try:
            BuildOptions.from_dict(v)
        except TypeError as e:
            raise ValueError(f"Invalid build_options: {e}") from e
        return v

    @model_validator(mode="after")
    def check_build_inputs(self):
        if self.build and not (self.annotation_source or self.annotation_path):
            raise ValueError("build requires either annotation_source or annotation_path")
        # Raises ValueError for unknown presets or bad pragma values
        self.get_pragma_settings()
        return self

    def get_pragma_settings(self) -> PragmaSettings:
        return get_pragma_preset(self.pragma_preset).merged(self.pragmas)


class OutputSinkParams(BaseModel):
    # Params for sink_type: "display"
    num_rows: Optional[int] = 20

    # Params for file sinks: "csv", "tsv", "json"
    path: Optional[str] = None
    index: bool = False

    model_config = ConfigDict(extra="allow")


class OutputSinkConfig(BaseConfigModel):
    sink_type: str = "display"
    config: OutputSinkParams = Field(default_factory=OutputSinkParams)


class QueryConfig(BaseConfigModel):
    name: str  # Key in QUERY_REGISTRY
    params: Dict[str, Any] = Field(default_factory=dict)
    output: OutputSinkConfig = Field(default_factory=OutputSinkConfig)

    @field_validator("params", mode="before")
    @classmethod
    def ensure_params_is_dict(cls, v):
        return v if v is not None else {}


class JobConfig(BaseConfigModel):
    job_name: Optional[str] = "Untitled Job"
    description: Optional[str] = ""
    database: DatabaseConfig
    queries: List[QueryConfig] = Field(default_factory=list)

    @field_validator("queries", mode="before")
    @classmethod
    def ensure_queries_is_list(cls, v):
        # Handles case where queries is omitted in YAML (becomes None)
        return v if v is not None else []


# --- Loading Function ---

def load_job_config(config_path: str) -> JobConfig:
    """
    Loads a job configuration from a YAML file and validates it using Pydantic models.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        A JobConfig object.

    Raises:
        FileNotFoundError: If the config_path does not exist.
        yaml.YAMLError: If the YAML is malformed.
        ValueError: If the file is empty.
        pydantic.ValidationError: If the configuration does not match the schema.
    """
    try:
        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(f"Configuration file not found at path: {config_path}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML configuration file at {config_path}: {e}")
        raise

    if raw_config is None:
        logger.error(f"Configuration file at {config_path} is empty or invalid.")
        raise ValueError(f"Configuration file {config_path} is empty or invalid.")

    try:
        validated_config = JobConfig(**raw_config)
    except ValidationError as e:
        logger.error(f"Validation error for job configuration from {config_path}: {e}")
        for error_detail in e.errors():
            logger.error(f"  Field: {'.'.join(map(str, error_detail['loc']))}, Message: {error_detail['msg']}")
        raise

    logger.info(f"Successfully loaded and validated job configuration from {config_path}")
    return validated_config
