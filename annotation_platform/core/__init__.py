"""
The annotation_platform.core module contains the database lifecycle manager,
pragma and build configuration, and the annotation catalog registry.
"""
from .config import AnnotationDBConfig, BuildOptions, PragmaSettings, PRAGMA_PRESETS, get_pragma_preset
from .database import AnnotationDatabaseManager, BuildReport
from .source_definition import AnnotationSourceDefinition
from .source_registry import AnnotationSourceRegistry

__all__ = [
    "AnnotationDBConfig",
    "BuildOptions",
    "PragmaSettings",
    "PRAGMA_PRESETS",
    "get_pragma_preset",
    "AnnotationDatabaseManager",
    "BuildReport",
    "AnnotationSourceDefinition",
    "AnnotationSourceRegistry",
]
