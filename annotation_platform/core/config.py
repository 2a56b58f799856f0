"""Connection, build and pragma configuration for annotation databases."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import os

# gffutils.constants.default_pragmas, spelled without the "main." schema prefix
DEFAULT_SYNCHRONOUS = "NORMAL"
DEFAULT_JOURNAL_MODE = "MEMORY"
DEFAULT_PAGE_SIZE = 4096
DEFAULT_CACHE_SIZE = 10000

SYNCHRONOUS_MODES = ("OFF", "NORMAL", "FULL", "EXTRA")
JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")

# Pragmas stored in the database file rather than on the connection
PERSISTENT_PRAGMAS = ("journal_mode", "page_size")

# Keys as gffutils passes them to SQLite
PRAGMA_KEYS = {
    "synchronous": "synchronous",
    "journal_mode": "journal_mode",
    "page_size": "main.page_size",
    "cache_size": "main.cache_size",
}


@dataclass
class PragmaSettings:
    """SQLite PRAGMA values applied when building or opening a database.

    Attributes:
        synchronous: How aggressively SQLite syncs to disk (OFF, NORMAL, FULL, EXTRA).
        journal_mode: Rollback journal mode. MEMORY keeps the journal off disk.
        page_size: Database page size in bytes. Only takes effect on a new file.
        cache_size: Page cache size. Positive values are pages, negative values are KiB.
    """
    synchronous: str = DEFAULT_SYNCHRONOUS
    journal_mode: str = DEFAULT_JOURNAL_MODE
    page_size: int = DEFAULT_PAGE_SIZE
    cache_size: int = DEFAULT_CACHE_SIZE

    def __post_init__(self):
        self.synchronous = str(self.synchronous).upper()
        self.journal_mode = str(self.journal_mode).upper()
        self.validate()

    def validate(self) -> None:
        """Raise ValueError if any pragma holds a value SQLite would reject."""
        if self.synchronous not in SYNCHRONOUS_MODES:
            raise ValueError(f"synchronous must be one of {SYNCHRONOUS_MODES}, got {self.synchronous}")

        if self.journal_mode not in JOURNAL_MODES:
            raise ValueError(f"journal_mode must be one of {JOURNAL_MODES}, got {self.journal_mode}")

        page_size = int(self.page_size)
        if page_size < 512 or page_size > 65536 or page_size & (page_size - 1):
            raise ValueError(f"page_size must be a power of two between 512 and 65536, got {self.page_size}")
        self.page_size = page_size

        cache_size = int(self.cache_size)
        if cache_size == 0:
            raise ValueError("cache_size must be non-zero")
        self.cache_size = cache_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            'synchronous': self.synchronous,
            'journal_mode': self.journal_mode,
            'page_size': self.page_size,
            'cache_size': self.cache_size,
        }

    def to_gffutils(self) -> Dict[str, Any]:
        """Return the pragmas keyed the way gffutils.create_db and FeatureDB expect."""
        return {PRAGMA_KEYS[name]: value for name, value in self.to_dict().items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PragmaSettings':
        """Create PragmaSettings from plain or "main."-prefixed pragma names."""
        return cls(**{normalize_pragma_name(key): value for key, value in (data or {}).items()})

    def merged(self, overrides: Optional[Dict[str, Any]]) -> 'PragmaSettings':
        """Return a copy with the given pragma overrides applied."""
        data = self.to_dict()
        for key, value in (overrides or {}).items():
            data[normalize_pragma_name(key)] = value
        return PragmaSettings(**data)


def normalize_pragma_name(key: str) -> str:
    """Strip the "main." schema prefix and reject pragmas this package does not manage."""
    name = key.split(".", 1)[1] if key.startswith("main.") else key
    if name not in PRAGMA_KEYS:
        raise ValueError(f"Unsupported pragma: {key}. Supported: {list(PRAGMA_KEYS)}")
    return name


PRAGMA_PRESETS: Dict[str, PragmaSettings] = {
    "default": PragmaSettings(),
    # Trades durability for build speed; a crash mid-build leaves a corrupt file.
    "fast": PragmaSettings(synchronous="OFF", journal_mode="MEMORY", page_size=4096, cache_size=-200000),
    "safe": PragmaSettings(synchronous="FULL", journal_mode="DELETE", page_size=4096, cache_size=2000),
}


def get_pragma_preset(name: str) -> PragmaSettings:
    """Return a fresh copy of a named pragma preset."""
    preset = PRAGMA_PRESETS.get(name)
    if preset is None:
        raise ValueError(f"Unknown pragma preset: {name}. Available presets: {list(PRAGMA_PRESETS)}")
    return PragmaSettings(**preset.to_dict())


@dataclass
class BuildOptions:
    """Keyword arguments for gffutils.create_db when importing a GTF/GFF file.

    GENCODE GTFs already carry explicit gene and transcript lines, so gene and
    transcript inference is disabled by default.
    """
    id_spec: Dict[str, str] = field(default_factory=lambda: {"gene": "gene_id", "transcript": "transcript_id"})
    merge_strategy: str = "create_unique"
    disable_infer_genes: bool = True
    disable_infer_transcripts: bool = True
    force: bool = False
    keep_order: bool = True
    checklines: int = 10
    from_string: bool = False
    verbose: bool = False

    def __post_init__(self):
        if self.merge_strategy not in ("error", "warning", "merge", "create_unique", "replace"):
            raise ValueError(f"Unsupported merge_strategy: {self.merge_strategy}")
        if self.checklines < 0:
            raise ValueError(f"checklines must be non-negative, got {self.checklines}")

    def to_kwargs(self) -> Dict[str, Any]:
        return {
            'id_spec': dict(self.id_spec),
            'merge_strategy': self.merge_strategy,
            'disable_infer_genes': self.disable_infer_genes,
            'disable_infer_transcripts': self.disable_infer_transcripts,
            'force': self.force,
            'keep_order': self.keep_order,
            'checklines': self.checklines,
            'from_string': self.from_string,
            'verbose': self.verbose,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'BuildOptions':
        return cls(**(data or {}))


@dataclass
class AnnotationDBConfig:
    """Where the annotation database lives and how to tune SQLite for it."""
    db_path: str = field(default_factory=lambda: os.getenv("ANNOTATION_DB_PATH", "annotation.db"))
    pragmas: PragmaSettings = field(
        default_factory=lambda: get_pragma_preset(os.getenv("ANNOTATION_DB_PRAGMA_PRESET", "default"))
    )
    keep_order: bool = True
    verbose: bool = False

    @property
    def in_memory(self) -> bool:
        return self.db_path == ":memory:"
