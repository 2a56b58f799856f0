import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import yaml

from annotation_platform.core.config import AnnotationDBConfig, BuildOptions, get_pragma_preset
from annotation_platform.core.database import AnnotationDatabaseManager
from annotation_platform.core.source_registry import AnnotationSourceRegistry
from annotation_platform.jobs.config_loader import DatabaseConfig, JobConfig, load_job_config
from annotation_platform.jobs.sinks import write_output
from annotation_platform.queries.factory import QUERY_REGISTRY, get_query
from annotation_platform.queries.gene_queries import TranscriptSummaryQuery

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = os.getenv("ANNOTATION_CATALOG_PATH", "catalog/")


def load_catalog(catalog_path: Optional[str] = None) -> AnnotationSourceRegistry:
    path = Path(catalog_path or DEFAULT_CATALOG_PATH)
    registry = AnnotationSourceRegistry.from_yaml_dir(path)
    logger.info(f"Loaded {len(registry.get_all_source_definitions())} annotation sources from {path.resolve()}")
    return registry


def parse_key_values(pairs: Optional[List[str]]) -> Dict[str, object]:
    """Turn ["level=1", "attributes=[gene_name]"] into a dict, YAML-typing each value."""
    result = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValueError(f"Expected key=value, got '{pair}'")
        key, value = pair.split("=", 1)
        result[key.strip()] = yaml.safe_load(value)
    return result


def resolve_annotation(db_config: DatabaseConfig, catalog: Optional[AnnotationSourceRegistry]):
    """
    Work out which annotation file to build from, and with which create_db options.
    Catalog build options are the base; job build options override them.
    """
    if db_config.annotation_path:
        return db_config.annotation_path, BuildOptions.from_dict({**db_config.build_options, "force": db_config.force})

    ref = db_config.annotation_source
    catalog = catalog or load_catalog()
    source_def = catalog.get_source_definition(name=ref.name, version=ref.version)
    if not source_def:
        logger.error(f"Annotation source not found for name='{ref.name}', version='{ref.version}'. "
                     f"Available sources: {[(s.name, s.version) for s in catalog.get_all_source_definitions()]}")
        raise ValueError(f"Annotation source not found: {ref.name} v{ref.version}")
    if not source_def.local_path:
        raise ValueError(f"Annotation source {source_def.label} has no local_path; download it from {source_def.url}")

    options = {**source_def.build_options, **db_config.build_options, "force": db_config.force}
    logger.info(f"Using annotation source {source_def.label} at {source_def.local_path}")
    return source_def.local_path, BuildOptions.from_dict(options)


def run_job(job_config: JobConfig, catalog: Optional[AnnotationSourceRegistry] = None) -> Dict[str, pd.DataFrame]:
    """
    Build (if asked) and open the job's database, run each query and write its output.

    Returns:
        Query results keyed by "<index>:<query name>".
    """
    db_config = job_config.database
    manager = AnnotationDatabaseManager(
        AnnotationDBConfig(db_path=db_config.db_path, pragmas=db_config.get_pragma_settings())
    )
    results = {}
    try:
        if db_config.build:
            annotation, options = resolve_annotation(db_config, catalog)
            manager.build(annotation, options)
        db = manager.open()
        logger.info(f"Database pragmas: {manager.get_pragmas()}")

        if not job_config.queries:
            logger.info("No queries specified in the configuration.")
        for index, query_config in enumerate(job_config.queries):
            query = get_query(query_config.name, query_config.params)
            logger.info(f"Running query {index}: {query!r}")
            df = query.run(db)
            logger.info(f"Query {query_config.name} returned {len(df)} rows")
            if isinstance(query, TranscriptSummaryQuery):
                logger.info(f"Exonic length statistics: {TranscriptSummaryQuery.length_statistics(df)}")
            write_output(df, query_config.output)
            results[f"{index}:{query_config.name}"] = df
    finally:
        manager.close()
    return results


# --- Subcommands ---

def cmd_build(args) -> None:
    pragmas = get_pragma_preset(args.preset).merged(parse_key_values(args.pragma))
    manager = AnnotationDatabaseManager(AnnotationDBConfig(db_path=args.db, pragmas=pragmas, verbose=args.verbose))
    options = BuildOptions(
        force=args.force,
        disable_infer_genes=not args.infer,
        disable_infer_transcripts=not args.infer,
    )
    try:
        manager.build(args.annotation, options)
        logger.info(f"Build report: {manager.last_build_report.to_dict()}")
    finally:
        manager.close()


def cmd_pragmas(args) -> None:
    manager = AnnotationDatabaseManager(AnnotationDBConfig(db_path=args.db))
    try:
        overrides = parse_key_values(args.set)
        if overrides:
            logger.info(f"Pragmas after update: {manager.persist_pragmas(overrides)}")
        else:
            logger.info(f"Pragmas for {args.db}: {manager.get_pragmas()}")
    finally:
        manager.close()


def cmd_query(args) -> None:
    query = get_query(args.name, parse_key_values(args.param))
    pragmas = get_pragma_preset(args.preset).merged(parse_key_values(args.pragma))
    with AnnotationDatabaseManager(AnnotationDBConfig(db_path=args.db, pragmas=pragmas)) as db:
        df = query.run(db)
    print(df.to_string(index=False, max_rows=args.max_rows))


def cmd_sql(args) -> None:
    manager = AnnotationDatabaseManager(AnnotationDBConfig(db_path=args.db))
    try:
        df = manager.execute(args.statement)
    finally:
        manager.close()
    print(df.to_string(index=False, max_rows=args.max_rows))


def cmd_run_job(args) -> None:
    job_config = load_job_config(args.config_path)
    logger.info(f"Starting job: {job_config.job_name}")
    logger.debug(f"Job configuration details: {job_config.model_dump()}")
    catalog = load_catalog(args.catalog) if job_config.database.annotation_source else None
    run_job(job_config, catalog)
    logger.info(f"Job '{job_config.job_name}' completed successfully.")


def cmd_catalog(args) -> None:
    registry = load_catalog(args.dir)
    for source_def in registry.get_all_source_definitions():
        print(f"{source_def.name}\t{source_def.version}\t{source_def.genome_build}\t{source_def.local_path or source_def.url}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build and query SQLite gene annotation databases.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    default_db = os.getenv("ANNOTATION_DB_PATH", "annotation.db")

    build = subparsers.add_parser("build", help="Import a GTF/GFF file into a new database.")
    build.add_argument("annotation", help="Path to the GTF/GFF annotation file.")
    build.add_argument("--db", default=default_db, help="Database file to create.")
    build.add_argument("--force", action="store_true", help="Overwrite an existing database.")
    build.add_argument("--preset", default="default", help="Pragma preset: default, fast or safe.")
    build.add_argument("--pragma", action="append", metavar="KEY=VALUE", help="Override a single pragma.")
    build.add_argument("--infer", action="store_true", help="Infer gene and transcript extents from exons.")
    build.set_defaults(func=cmd_build)

    pragmas = subparsers.add_parser("pragmas", help="Show SQLite pragmas, or store page_size and WAL journal mode in the database file.")
    pragmas.add_argument("--db", default=default_db)
    pragmas.add_argument("--set", action="append", metavar="KEY=VALUE", help="Persistent pragma to change (page_size, journal_mode=WAL).")
    pragmas.set_defaults(func=cmd_pragmas)

    query = subparsers.add_parser("query", help="Run a named query.")
    query.add_argument("name", choices=sorted(QUERY_REGISTRY.keys()))
    query.add_argument("--db", default=default_db)
    query.add_argument("--param", action="append", metavar="KEY=VALUE", help="Query parameter.")
    query.add_argument("--max-rows", type=int, default=50)
    query.add_argument("--preset", default="default", help="Pragma preset for this connection.")
    query.add_argument("--pragma", action="append", metavar="KEY=VALUE", help="Override a single pragma for this connection.")
    query.set_defaults(func=cmd_query)

    sql = subparsers.add_parser("sql", help="Run raw SQL against the database.")
    sql.add_argument("statement")
    sql.add_argument("--db", default=default_db)
    sql.add_argument("--max-rows", type=int, default=50)
    sql.set_defaults(func=cmd_sql)

    run_job_parser = subparsers.add_parser("run-job", help="Execute a YAML job configuration.")
    run_job_parser.add_argument("config_path", help="Path to the job configuration YAML file.")
    run_job_parser.add_argument("--catalog", default=None, help="Annotation catalog directory.")
    run_job_parser.set_defaults(func=cmd_run_job)

    catalog = subparsers.add_parser("catalog", help="List annotation sources in the catalog.")
    catalog.add_argument("--dir", default=None)
    catalog.set_defaults(func=cmd_catalog)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    try:
        args.func(args)
    except Exception as e:
        logger.error(f"Command '{args.command}' failed: {e}", exc_info=args.verbose)
        sys.exit(1)


if __name__ == "__main__":
    # Example: python -m runner.execute_query_job run-job configs/jobs/gencode_v19_gene_queries.yaml
    main()
