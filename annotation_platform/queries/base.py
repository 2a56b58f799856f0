from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence
import logging

import pandas as pd
from gffutils.exceptions import FeatureNotFoundError

if TYPE_CHECKING:
    import gffutils

logger = logging.getLogger(__name__)

FEATURE_COLUMNS = ["id", "seqid", "source", "featuretype", "start", "end", "strand", "frame"]


class FeatureQuery(ABC):
    """
    Abstract base class for annotation database queries.
    A query reads features from a gffutils FeatureDB and returns them as a
    pandas DataFrame, one row per result.
    """

    @abstractmethod
    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        """
        Runs the query against an open FeatureDB.

        Args:
            db: The FeatureDB to query.

        Returns:
            A DataFrame holding the query results.
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def first_attribute(feature: "gffutils.Feature", key: str) -> Optional[str]:
    """Return the first value of a GTF attribute, or None if the feature lacks it."""
    values = feature.attributes.get(key)
    if not values:
        return None
    return values[0]


def feature_record(feature: "gffutils.Feature", attributes: Sequence[str] = ()) -> dict:
    record = {
        "id": feature.id,
        "seqid": feature.seqid,
        "source": feature.source,
        "featuretype": feature.featuretype,
        "start": feature.start,
        "end": feature.end,
        "strand": feature.strand,
        "frame": feature.frame,
    }
    for key in attributes:
        record[key] = first_attribute(feature, key)
    return record


def unique_features(features: Iterable["gffutils.Feature"]) -> List["gffutils.Feature"]:
    """Drop repeated features (by id) while keeping the original order."""
    seen = set()
    result = []
    for feature in features:
        if feature.id in seen:
            continue
        seen.add(feature.id)
        result.append(feature)
    return result


def features_to_frame(features: Iterable["gffutils.Feature"], attributes: Sequence[str] = ()) -> pd.DataFrame:
    records = [feature_record(f, attributes) for f in features]
    return pd.DataFrame(records, columns=FEATURE_COLUMNS + list(attributes))


def get_feature(db: "gffutils.FeatureDB", feature_id: str) -> "gffutils.Feature":
    try:
        return db[feature_id]
    except FeatureNotFoundError as e:
        logger.error(f"Feature '{feature_id}' not found in annotation database")
        raise KeyError(feature_id) from e
