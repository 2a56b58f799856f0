import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from annotation_platform.core.database import execute_to_frame
from annotation_platform.queries.base import (
    FEATURE_COLUMNS,
    FeatureQuery,
    feature_record,
    features_to_frame,
    first_attribute,
    get_feature,
    unique_features,
)
from annotation_platform.queries.utr import (
    FIVE_PRIME_UTR,
    THREE_PRIME_UTR,
    cds_bounds,
    is_utr,
    label_utr,
    utr_lengths,
)

if TYPE_CHECKING:
    import gffutils

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "transcript_id", "gene_id", "gene_name", "transcript_type", "seqid", "start", "end", "strand",
    "n_exons", "exonic_length", "cds_length", "utr5_length", "utr3_length",
]


class GeneChildrenQuery(FeatureQuery):
    """Lists the features below a gene, e.g. its transcripts or exons."""

    def __init__(
        self,
        gene_id: str,
        featuretype: Optional[str] = None,
        level: Optional[int] = None,
        attributes: Optional[Sequence[str]] = None,
    ):
        if not gene_id:
            raise ValueError("gene_id cannot be empty.")
        if level is not None and level < 1:
            raise ValueError(f"level must be a positive integer, got {level}")
        self.gene_id = gene_id
        self.featuretype = featuretype
        self.level = level
        self.attributes = list(attributes or [])

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        gene = get_feature(db, self.gene_id)
        children = db.children(gene, level=self.level, featuretype=self.featuretype, order_by="start")
        features = [f for f in unique_features(children) if f.id != gene.id]
        logger.info(f"Found {len(features)} children of {self.gene_id} (featuretype={self.featuretype}, level={self.level})")
        return features_to_frame(features, self.attributes)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(gene_id='{self.gene_id}', featuretype='{self.featuretype}', level={self.level})"


class TranscriptExonsQuery(FeatureQuery):
    """Exons of one transcript in genomic order, with their lengths."""

    def __init__(self, transcript_id: str):
        if not transcript_id:
            raise ValueError("transcript_id cannot be empty.")
        self.transcript_id = transcript_id

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        transcript = get_feature(db, self.transcript_id)
        exons = unique_features(db.children(transcript, featuretype="exon", order_by="start"))
        frame = features_to_frame(exons, ["exon_number"])
        frame["exon_number"] = pd.to_numeric(frame["exon_number"], errors="coerce").astype("Int64")
        frame["length"] = frame["end"] - frame["start"] + 1
        return frame

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(transcript_id='{self.transcript_id}')"


class TranscriptUTRQuery(FeatureQuery):
    """UTRs of one transcript, each labelled as 5' or 3' relative to the CDS."""

    def __init__(self, transcript_id: str):
        if not transcript_id:
            raise ValueError("transcript_id cannot be empty.")
        self.transcript_id = transcript_id

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        transcript = get_feature(db, self.transcript_id)
        children = unique_features(db.children(transcript, order_by="start"))
        cds_start, cds_end = cds_bounds(f for f in children if f.featuretype == "CDS")

        records = []
        for utr in (f for f in children if is_utr(f.featuretype)):
            record = feature_record(utr)
            record["utr_type"] = label_utr(utr, cds_start, cds_end)
            record["length"] = utr.end - utr.start + 1
            records.append(record)
        return pd.DataFrame(records, columns=FEATURE_COLUMNS + ["utr_type", "length"])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(transcript_id='{self.transcript_id}')"


class TranscriptSummaryQuery(FeatureQuery):
    """
    One row per transcript with exon count and exonic, CDS and UTR lengths.
    Restrict to a gene with gene_id, or to a biotype with transcript_type.
    """

    def __init__(self, gene_id: Optional[str] = None, transcript_type: Optional[str] = None, limit: Optional[int] = None):
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")
        self.gene_id = gene_id
        self.transcript_type = transcript_type
        self.limit = limit

    def _transcripts(self, db: "gffutils.FeatureDB"):
        if self.gene_id:
            gene = get_feature(db, self.gene_id)
            return unique_features(db.children(gene, featuretype="transcript", order_by="start"))
        return db.features_of_type("transcript", order_by=("seqid", "start"))

    def summarize(self, db: "gffutils.FeatureDB", transcript: "gffutils.Feature") -> Dict[str, Any]:
        children = unique_features(db.children(transcript))
        exons = [f for f in children if f.featuretype == "exon"]
        cds = [f for f in children if f.featuretype == "CDS"]
        utrs = utr_lengths((f for f in children if is_utr(f.featuretype)), cds)
        return {
            "transcript_id": transcript.id,
            "gene_id": first_attribute(transcript, "gene_id"),
            "gene_name": first_attribute(transcript, "gene_name"),
            "transcript_type": first_attribute(transcript, "transcript_type"),
            "seqid": transcript.seqid,
            "start": transcript.start,
            "end": transcript.end,
            "strand": transcript.strand,
            "n_exons": len(exons),
            "exonic_length": sum(f.end - f.start + 1 for f in exons),
            "cds_length": sum(f.end - f.start + 1 for f in cds),
            "utr5_length": utrs[FIVE_PRIME_UTR],
            "utr3_length": utrs[THREE_PRIME_UTR],
        }

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        records = []
        for transcript in self._transcripts(db):
            if self.transcript_type and first_attribute(transcript, "transcript_type") != self.transcript_type:
                continue
            records.append(self.summarize(db, transcript))
            if self.limit is not None and len(records) >= self.limit:
                break
        logger.info(f"Summarized {len(records)} transcripts")
        return pd.DataFrame(records, columns=SUMMARY_COLUMNS)

    @staticmethod
    def length_statistics(summary: pd.DataFrame, column: str = "exonic_length") -> Dict[str, float]:
        """Count, mean, median, 90th percentile and max of a length column."""
        values = summary[column].to_numpy(dtype=float)
        if values.size == 0:
            return {"count": 0, "mean": 0.0, "median": 0.0, "p90": 0.0, "max": 0.0}
        return {
            "count": int(values.size),
            "mean": float(np.mean(values)),
            "median": float(np.median(values)),
            "p90": float(np.percentile(values, 90)),
            "max": float(np.max(values)),
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(gene_id='{self.gene_id}', transcript_type='{self.transcript_type}', limit={self.limit})"


class GenesByNameQuery(FeatureQuery):
    """Finds genes by their gene_name attribute (e.g. BRCA1)."""

    def __init__(self, gene_names: Union[str, List[str]], attributes: Optional[Sequence[str]] = None):
        if isinstance(gene_names, str):
            gene_names = [gene_names]
        if not gene_names:
            raise ValueError("gene_names cannot be empty.")
        self.gene_names = list(gene_names)
        self.attributes = list(attributes or ["gene_name", "gene_type"])

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        features = []
        for name in self.gene_names:
            # attributes are stored as JSON text, so LIKE only narrows the candidates
            candidates = execute_to_frame(
                db.conn,
                "SELECT id FROM features WHERE featuretype = 'gene' AND attributes LIKE ?",
                (f'%"{name}"%',),
            )
            matches = [
                gene for gene in (db[fid] for fid in candidates["id"])
                if first_attribute(gene, "gene_name") == name
            ]
            if not matches:
                logger.warning(f"No gene named '{name}' in annotation database")
            features.extend(matches)
        return features_to_frame(unique_features(features), self.attributes)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(gene_names={self.gene_names})"


class FeaturesOfTypeQuery(FeatureQuery):
    """All features of one type, optionally limited to a gene biotype."""

    def __init__(
        self,
        featuretype: str,
        limit: Optional[int] = None,
        gene_type: Optional[str] = None,
        attributes: Optional[Sequence[str]] = None,
    ):
        if not featuretype:
            raise ValueError("featuretype cannot be empty.")
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")
        self.featuretype = featuretype
        self.limit = limit
        self.gene_type = gene_type
        self.attributes = list(attributes or [])

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        features = []
        for feature in db.features_of_type(self.featuretype, order_by=("seqid", "start")):
            if self.gene_type and first_attribute(feature, "gene_type") != self.gene_type:
                continue
            features.append(feature)
            if self.limit is not None and len(features) >= self.limit:
                break
        return features_to_frame(features, self.attributes)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(featuretype='{self.featuretype}', limit={self.limit}, gene_type='{self.gene_type}')"


class RegionQuery(FeatureQuery):
    """Features overlapping (or contained in) a genomic interval."""

    def __init__(
        self,
        seqid: str,
        start: int,
        end: int,
        featuretype: Optional[str] = None,
        completely_within: bool = False,
        attributes: Optional[Sequence[str]] = None,
    ):
        if not seqid:
            raise ValueError("seqid cannot be empty.")
        if start < 1 or end < start:
            raise ValueError(f"Invalid region {seqid}:{start}-{end}")
        self.seqid = seqid
        self.start = start
        self.end = end
        self.featuretype = featuretype
        self.completely_within = completely_within
        self.attributes = list(attributes or [])

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        features = db.region(
            seqid=self.seqid,
            start=self.start,
            end=self.end,
            featuretype=self.featuretype,
            completely_within=self.completely_within,
        )
        features = sorted(unique_features(features), key=lambda f: (f.start, f.end, f.id))
        return features_to_frame(features, self.attributes)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(region='{self.seqid}:{self.start}-{self.end}', featuretype='{self.featuretype}')"


class FeatureTypeCountsQuery(FeatureQuery):
    """How many features of each type the database holds."""

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        counts = [(ft, db.count_features_of_type(ft)) for ft in db.featuretypes()]
        frame = pd.DataFrame(counts, columns=["featuretype", "count"])
        return frame.sort_values(["count", "featuretype"], ascending=[False, True]).reset_index(drop=True)


class RawSQLQuery(FeatureQuery):
    """Runs SQL directly against the gffutils schema (features, relations, meta, ...)."""

    def __init__(self, sql: str, params: Optional[Union[List[Any], Dict[str, Any]]] = None):
        if not sql or not sql.strip():
            raise ValueError("sql cannot be empty.")
        self.sql = sql
        self.params = params

    def run(self, db: "gffutils.FeatureDB") -> pd.DataFrame:
        params = tuple(self.params) if isinstance(self.params, list) else self.params
        return execute_to_frame(db.conn, self.sql, params)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(sql='{self.sql}')"
