"""
The annotation_platform.queries module provides the FeatureQuery base class,
the concrete gene, transcript, region and raw SQL queries, UTR labelling
helpers, and a factory for instantiating queries by name.
"""
from .base import FeatureQuery, FEATURE_COLUMNS
from .gene_queries import (
    GeneChildrenQuery,
    TranscriptExonsQuery,
    TranscriptUTRQuery,
    TranscriptSummaryQuery,
    GenesByNameQuery,
    FeaturesOfTypeQuery,
    RegionQuery,
    FeatureTypeCountsQuery,
    RawSQLQuery,
)
from .utr import classify_utr, utr_lengths
from .factory import QUERY_REGISTRY, get_query

__all__ = [
    "FeatureQuery",
    "FEATURE_COLUMNS",
    "GeneChildrenQuery",
    "TranscriptExonsQuery",
    "TranscriptUTRQuery",
    "TranscriptSummaryQuery",
    "GenesByNameQuery",
    "FeaturesOfTypeQuery",
    "RegionQuery",
    "FeatureTypeCountsQuery",
    "RawSQLQuery",
    "classify_utr",
    "utr_lengths",
    "QUERY_REGISTRY",
    "get_query",
]
