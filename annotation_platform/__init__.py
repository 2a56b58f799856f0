"""Annotation Platform - build and query SQLite gene annotation databases with gffutils."""

__version__ = "0.1.0"

from .core.config import AnnotationDBConfig, BuildOptions, PragmaSettings
from .core.database import AnnotationDatabaseManager
from .core.source_registry import AnnotationSourceRegistry
from .queries.factory import get_query
