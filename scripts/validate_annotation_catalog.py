import logging
import sys
from pathlib import Path

from annotation_platform.core.source_registry import AnnotationSourceRegistry

# Configure basic logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main():
    """
    Validates the annotation catalog by loading every entry from the
    'catalog/' directory and checking that local files referenced by it exist.
    """
    repo_root = Path(__file__).resolve().parent.parent
    catalog_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else repo_root / "catalog"

    logger.info(f"Starting validation of annotation catalog in directory: {catalog_dir.resolve()}")

    registry = AnnotationSourceRegistry.from_yaml_dir(catalog_dir)
    source_defs = registry.get_all_source_definitions()
    if not source_defs:
        logger.error(f"No valid annotation sources found in {catalog_dir}")
        sys.exit(1)

    for source_def in source_defs:
        if source_def.local_path and not Path(source_def.local_path).exists():
            logger.warning(f"{source_def.label}: local file {source_def.local_path} is missing; fetch it from {source_def.url}")

    logger.info(f"Successfully validated and loaded {len(source_defs)} annotation sources.")
    sys.exit(0)


if __name__ == "__main__":
    main()
