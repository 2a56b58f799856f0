import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import gffutils
import pandas as pd

from annotation_platform.core.config import (
    PERSISTENT_PRAGMAS,
    AnnotationDBConfig,
    BuildOptions,
    PragmaSettings,
    normalize_pragma_name,
)

logger = logging.getLogger(__name__)

# PRAGMA synchronous reports an integer level
SYNCHRONOUS_LEVELS = {0: "OFF", 1: "NORMAL", 2: "FULL", 3: "EXTRA"}


@dataclass
class BuildReport:
    """Summary of a single create_db run."""
    annotation: str
    db_path: str
    seconds: float
    featuretype_counts: Dict[str, int] = field(default_factory=dict)
    db_size_bytes: Optional[int] = None
    pragmas: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_features(self) -> int:
        return sum(self.featuretype_counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'annotation': self.annotation,
            'db_path': self.db_path,
            'seconds': round(self.seconds, 3),
            'total_features': self.total_features,
            'featuretype_counts': dict(self.featuretype_counts),
            'db_size_bytes': self.db_size_bytes,
            'pragmas': dict(self.pragmas),
        }


class AnnotationDatabaseManager:
    """Manages the lifecycle of a gffutils FeatureDB backed by SQLite."""

    def __init__(self, config: Optional[AnnotationDBConfig] = None):
        """
        Args:
            config: Database location and pragmas. Defaults to an AnnotationDBConfig
                    built from the environment.
        """
        self.config = config or AnnotationDBConfig()
        self._db: Optional[gffutils.FeatureDB] = None
        self.last_build_report: Optional[BuildReport] = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    def build(self, annotation: str, options: Optional[BuildOptions] = None) -> gffutils.FeatureDB:
        """
        Import a GTF/GFF file into a new SQLite database with gffutils.create_db.

        Args:
            annotation: Path to the annotation file, or the annotation text itself
                        when options.from_string is set.
            options: create_db keyword arguments. Defaults suit GENCODE GTFs.

        Returns:
            The FeatureDB for the freshly built database. It stays open on this manager.

        Raises:
            FileNotFoundError: If the annotation file does not exist.
            FileExistsError: If the database file exists and options.force is not set.
        """
        options = options or BuildOptions()
        db_path = self.config.db_path
        source_label = "<string>" if options.from_string else annotation

        if not options.from_string and not os.path.exists(annotation):
            logger.error(f"Annotation file not found: {annotation}")
            raise FileNotFoundError(f"Annotation file not found: {annotation}")

        if not self.config.in_memory and os.path.exists(db_path) and not options.force:
            logger.error(f"Database {db_path} already exists. Pass force=True to rebuild it.")
            raise FileExistsError(f"Database already exists: {db_path}")

        self.close()
        pragmas = self.config.pragmas.to_gffutils()
        logger.info(f"Building annotation database {db_path} from {source_label} with pragmas {pragmas}")

        started = time.perf_counter()
        try:
            kwargs = options.to_kwargs()
            kwargs["verbose"] = options.verbose or self.config.verbose
            db = gffutils.create_db(annotation, db_path, pragmas=pragmas, **kwargs)
        except Exception as e:
            logger.error(f"Failed to build database {db_path} from {source_label}: {e}")
            raise
        elapsed = time.perf_counter() - started

        self._db = db
        self.last_build_report = BuildReport(
            annotation=source_label,
            db_path=db_path,
            seconds=elapsed,
            featuretype_counts=self.featuretype_counts(),
            db_size_bytes=None if self.config.in_memory else os.path.getsize(db_path),
            pragmas=self.config.pragmas.to_dict(),
        )
        logger.info(
            f"Built {db_path} in {elapsed:.2f}s "
            f"({self.last_build_report.total_features} features, "
            f"{len(self.last_build_report.featuretype_counts)} feature types)"
        )
        if self.config.verbose:
            for featuretype, count in sorted(self.last_build_report.featuretype_counts.items()):
                logger.info(f"  {featuretype}: {count}")
        return db

    def open(self) -> gffutils.FeatureDB:
        """Open the configured database file if it is not already open."""
        if self._db is None:
            if self.config.in_memory:
                raise ValueError("An in-memory database must be built before it can be opened.")
            if not os.path.exists(self.config.db_path):
                logger.error(f"Annotation database not found: {self.config.db_path}")
                raise FileNotFoundError(f"Annotation database not found: {self.config.db_path}")
            logger.info(f"Opening annotation database {self.config.db_path}")
            self._db = gffutils.FeatureDB(
                self.config.db_path,
                keep_order=self.config.keep_order,
                pragmas=self.config.pragmas.to_gffutils(),
            )
        return self._db

    def get_db(self) -> gffutils.FeatureDB:
        return self.open()

    def featuretype_counts(self) -> Dict[str, int]:
        db = self.get_db()
        return {ft: db.count_features_of_type(ft) for ft in db.featuretypes()}

    def get_pragmas(self) -> Dict[str, Any]:
        """Read the current value of each tunable pragma from the open connection."""
        conn = self.get_db().conn
        values = {}
        for name in ("synchronous", "journal_mode", "page_size", "cache_size"):
            value = conn.execute(f"PRAGMA {name}").fetchone()[0]
            if name == "synchronous":
                value = SYNCHRONOUS_LEVELS.get(value, value)
            elif name == "journal_mode":
                value = str(value).upper()
            values[name] = value
        return values

    def set_pragmas(self, settings: PragmaSettings) -> Dict[str, Any]:
        """Apply new pragma values to the open connection and return what SQLite reports back."""
        db = self.get_db()
        logger.info(f"Setting pragmas on {self.config.db_path}: {settings.to_gffutils()}")
        db.set_pragmas(settings.to_gffutils())
        self.config.pragmas = settings
        return self.get_pragmas()

    def persist_pragmas(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write the pragmas SQLite keeps in the database file itself.

        Only a page_size change (rewritten with VACUUM) and journal_mode=WAL outlive
        the connection. Other pragmas are skipped with a warning; pass them when
        building or opening instead.

        Returns:
            The pragma values SQLite reports after the change.

        Raises:
            ValueError: For unsupported pragmas or values, or a page_size change
                        on a database in WAL mode.
        """
        conn = self.get_db().conn
        current = self.get_pragmas()
        requested = {normalize_pragma_name(key): value for key, value in (overrides or {}).items()}
        # Validates the requested values
        settings = PragmaSettings.from_dict(current).merged(requested)

        for name in requested:
            if name not in PERSISTENT_PRAGMAS:
                logger.warning(
                    f"Pragma {name} only applies to the current connection and was not stored in "
                    f"{self.config.db_path}; set it with --preset/--pragma when building or querying."
                )

        if "page_size" in requested and settings.page_size != current["page_size"]:
            if current["journal_mode"] == "WAL":
                raise ValueError("page_size cannot be changed while the database is in WAL mode")
            logger.info(f"Rewriting {self.config.db_path} with page_size {settings.page_size}")
            conn.commit()
            conn.execute(f"PRAGMA main.page_size = {settings.page_size}")
            conn.execute("VACUUM")

        if "journal_mode" in requested:
            if settings.journal_mode == "WAL":
                conn.execute("PRAGMA journal_mode = WAL")
                logger.info(f"Switched {self.config.db_path} to WAL journal mode")
            else:
                logger.warning(
                    f"journal_mode {settings.journal_mode} is not stored in the database file; "
                    "only WAL persists across connections."
                )

        return self.get_pragmas()

    def execute(self, query: str, params: Optional[Any] = None) -> pd.DataFrame:
        """Run raw SQL against the gffutils schema and return the rows as a DataFrame."""
        return execute_to_frame(self.get_db().conn, query, params)

    def close(self) -> None:
        """Close the underlying SQLite connection. Safe to call more than once."""
        if self._db is not None:
            self._db.conn.close()
            logger.info(f"Closed annotation database {self.config.db_path}")
            self._db = None

    def __enter__(self) -> gffutils.FeatureDB:
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def execute_to_frame(conn, query: str, params: Optional[Any] = None) -> pd.DataFrame:
    """Execute a SQL query on a sqlite3 connection and return the results as a pandas DataFrame."""
    cursor = conn.cursor()
    try:
        cursor.execute(query, params or ())
        columns = [desc[0] for desc in cursor.description] if cursor.description else []
        rows = [tuple(row) for row in cursor.fetchall()]
        return pd.DataFrame(rows, columns=columns)
    except Exception as e:
        logger.error(f"Error executing query: {query} with params: {params}. Error: {e}")
        raise
    finally:
        cursor.close()
