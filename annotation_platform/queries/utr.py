"""
Helpers for labelling untranslated regions.

GENCODE GTFs tag both ends of a transcript with the single feature type
"UTR". Whether a UTR is 5' or 3' follows from its position relative to the
transcript's coding sequence and strand.
"""
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple

if TYPE_CHECKING:
    import gffutils

FIVE_PRIME_UTR = "five_prime_UTR"
THREE_PRIME_UTR = "three_prime_UTR"
UNCLASSIFIED_UTR = "UTR"

# Feature types used across GENCODE, Ensembl and GFF3 releases
UTR_FEATURETYPES = {
    "UTR": UNCLASSIFIED_UTR,
    "five_prime_UTR": FIVE_PRIME_UTR,
    "five_prime_utr": FIVE_PRIME_UTR,
    "5UTR": FIVE_PRIME_UTR,
    "three_prime_UTR": THREE_PRIME_UTR,
    "three_prime_utr": THREE_PRIME_UTR,
    "3UTR": THREE_PRIME_UTR,
}


def is_utr(featuretype: str) -> bool:
    return featuretype in UTR_FEATURETYPES


def classify_utr(start: int, end: int, cds_start: Optional[int], cds_end: Optional[int], strand: str) -> str:
    """
    Label a UTR interval as 5' or 3' given the transcript's CDS bounds.

    Args:
        start: UTR start (1-based, inclusive).
        end: UTR end (1-based, inclusive).
        cds_start: Lowest CDS coordinate of the transcript, or None if non-coding.
        cds_end: Highest CDS coordinate of the transcript, or None if non-coding.
        strand: "+" or "-". Any other strand cannot be oriented.

    Returns:
        FIVE_PRIME_UTR, THREE_PRIME_UTR, or UNCLASSIFIED_UTR.
    """
    if cds_start is None or cds_end is None or strand not in ("+", "-"):
        return UNCLASSIFIED_UTR
    upstream = end < cds_start
    downstream = start > cds_end
    if not (upstream or downstream):
        return UNCLASSIFIED_UTR
    if strand == "+":
        return FIVE_PRIME_UTR if upstream else THREE_PRIME_UTR
    return FIVE_PRIME_UTR if downstream else THREE_PRIME_UTR


def cds_bounds(cds_features: Iterable["gffutils.Feature"]) -> Tuple[Optional[int], Optional[int]]:
    cds_features = list(cds_features)
    if not cds_features:
        return None, None
    return min(f.start for f in cds_features), max(f.end for f in cds_features)


def label_utr(utr: "gffutils.Feature", cds_start: Optional[int], cds_end: Optional[int]) -> str:
    """Keep an explicit 5'/3' feature type, otherwise classify by CDS position."""
    label = UTR_FEATURETYPES.get(utr.featuretype, UNCLASSIFIED_UTR)
    if label != UNCLASSIFIED_UTR:
        return label
    return classify_utr(utr.start, utr.end, cds_start, cds_end, utr.strand)


def utr_lengths(utr_features: Iterable["gffutils.Feature"], cds_features: Iterable["gffutils.Feature"]) -> Dict[str, int]:
    """Sum UTR lengths per label for one transcript."""
    cds_start, cds_end = cds_bounds(cds_features)
    totals = {FIVE_PRIME_UTR: 0, THREE_PRIME_UTR: 0, UNCLASSIFIED_UTR: 0}
    for utr in utr_features:
        totals[label_utr(utr, cds_start, cds_end)] += utr.end - utr.start + 1
    return totals
