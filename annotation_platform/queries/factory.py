import logging

from .base import FeatureQuery
from .gene_queries import (
    FeaturesOfTypeQuery,
    FeatureTypeCountsQuery,
    GeneChildrenQuery,
    GenesByNameQuery,
    RawSQLQuery,
    RegionQuery,
    TranscriptExonsQuery,
    TranscriptSummaryQuery,
    TranscriptUTRQuery,
)

logger = logging.getLogger(__name__)

QUERY_REGISTRY = {
    "gene_children": GeneChildrenQuery,
    "transcript_exons": TranscriptExonsQuery,
    "transcript_utrs": TranscriptUTRQuery,
    "transcript_summary": TranscriptSummaryQuery,
    "genes_by_name": GenesByNameQuery,
    "features_of_type": FeaturesOfTypeQuery,
    "region": RegionQuery,
    "featuretype_counts": FeatureTypeCountsQuery,
    "raw_sql": RawSQLQuery,
}


def get_query(name: str, params: dict) -> FeatureQuery:
    """
    Instantiates a FeatureQuery based on its name and parameters.

    Args:
        name: The name of the query (must be a key in QUERY_REGISTRY).
        params: A dictionary of parameters to initialize the query.

    Returns:
        An instance of the requested FeatureQuery.

    Raises:
        ValueError: If the query name is not found in the registry
                    or if instantiation fails.
    """
    QueryClass = QUERY_REGISTRY.get(name)
    if not QueryClass:
        logger.error(f"Unknown query: {name}. Available queries: {list(QUERY_REGISTRY.keys())}")
        raise ValueError(f"Unknown query: {name}")

    try:
        logger.info(f"Initializing query: {name} with params: {params}")
        return QueryClass(**(params or {}))
    except (TypeError, ValueError) as e:
        logger.error(f"Error initializing query {name} with params {params}: {e}", exc_info=True)
        raise ValueError(f"Failed to initialize query {name}: {e}") from e
