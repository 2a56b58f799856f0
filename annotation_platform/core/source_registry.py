"""
Provides the AnnotationSourceRegistry for loading and managing annotation
release definitions (AnnotationSourceDefinition objects) from the YAML-based
annotation catalog.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from annotation_platform.core.source_definition import AnnotationSourceDefinition

logger = logging.getLogger(__name__)


class AnnotationSourceRegistry:
    def __init__(self):
        self._source_definitions: Dict[Tuple[str, str], AnnotationSourceDefinition] = {}

    def add_source_definition(self, source_def: AnnotationSourceDefinition):
        key = (source_def.name, source_def.version)
        if key in self._source_definitions:
            raise ValueError(
                f"Annotation source '{source_def.name}' version '{source_def.version}' already exists."
            )
        self._source_definitions[key] = source_def
        logger.info(f"Added annotation source: {source_def.label}")

    def get_source_definition(self, name: str, version: Optional[str] = None) -> Optional[AnnotationSourceDefinition]:
        if version:
            return self._source_definitions.get((name, str(version)))

        matching_versions = [
            src_def for (src_name, _), src_def in self._source_definitions.items() if src_name == name
        ]
        if not matching_versions:
            return None
        if len(matching_versions) == 1:
            return matching_versions[0]
        raise ValueError(
            f"Multiple versions found for annotation source '{name}'. Please specify a version. "
            f"Available versions: {[v.version for v in matching_versions]}"
        )

    def get_all_source_definitions(self) -> List[AnnotationSourceDefinition]:
        return list(self._source_definitions.values())

    def _add_from_data(self, item_data, yaml_file: Path) -> None:
        try:
            self.add_source_definition(AnnotationSourceDefinition(**item_data))
        except ValidationError as e:
            logger.error(f"Validation error parsing {yaml_file}: {e}")
        except (TypeError, ValueError) as e:
            logger.error(f"Error processing entry in {yaml_file}: {e}")

    @classmethod
    def from_yaml_dir(cls, dir_path: Path) -> "AnnotationSourceRegistry":
        registry = cls()
        dir_path = Path(dir_path)
        if not dir_path.is_dir():
            logger.error(f"Provided path '{dir_path}' is not a directory or does not exist.")
            return registry

        yaml_files = sorted(list(dir_path.glob("**/*.yaml")) + list(dir_path.glob("**/*.yml")))
        for yaml_file in yaml_files:
            logger.info(f"Processing YAML file: {yaml_file}")
            try:
                with open(yaml_file, "r") as f:
                    yaml_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error(f"Error parsing YAML file {yaml_file}: {e}")
                continue
            except IOError as e:
                logger.error(f"Error reading file {yaml_file}: {e}")
                continue

            if not yaml_data:
                logger.warning(f"YAML file is empty or contains no data: {yaml_file}")
            elif isinstance(yaml_data, list):
                for item_data in yaml_data:
                    registry._add_from_data(item_data, yaml_file)
            elif isinstance(yaml_data, dict):
                registry._add_from_data(yaml_data, yaml_file)
            else:
                logger.warning(f"Unexpected YAML structure in {yaml_file}. Expected dict or list.")

        return registry
