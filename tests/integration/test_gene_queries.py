"""Runs each query against a database built from the sample GTF."""

import pytest

from annotation_platform.queries import (
    FEATURE_COLUMNS,
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


def test_gene_transcripts(db):
    df = GeneChildrenQuery("ENSG01", featuretype="transcript", attributes=["transcript_type"]).run(db)
    assert list(df.columns) == FEATURE_COLUMNS + ["transcript_type"]
    assert sorted(df["id"]) == ["ENST01", "ENST02"]
    assert set(df["transcript_type"]) == {"protein_coding", "processed_transcript"}


def test_gene_exons_across_transcripts(db):
    df = GeneChildrenQuery("ENSG01", featuretype="exon").run(db)
    # Exon 1000-1500 and 2000-2500 appear once per transcript
    assert len(df) == 5
    assert list(df["start"]) == sorted(df["start"])
    assert df["id"].is_unique


def test_gene_children_unknown_gene(db, caplog):
    with pytest.raises(KeyError):
        GeneChildrenQuery("ENSG99").run(db)
    assert "Feature 'ENSG99' not found" in caplog.text


@pytest.mark.parametrize("query", [
    TranscriptExonsQuery("ENST99"),
    TranscriptUTRQuery("ENST99"),
    TranscriptSummaryQuery(gene_id="ENSG99"),
])
def test_unknown_ids_raise_key_error(db, query):
    with pytest.raises(KeyError):
        query.run(db)


def test_transcript_exons(db):
    df = TranscriptExonsQuery("ENST01").run(db)
    assert list(df["start"]) == [1000, 2000, 4000]
    assert list(df["length"]) == [501, 501, 1001]
    assert list(df["exon_number"]) == [1, 2, 3]


def test_transcript_exons_minus_strand_numbering(db):
    df = TranscriptExonsQuery("ENST03").run(db)
    # Genomic order is ascending; exon_number follows the transcript's 5'->3' direction
    assert list(df["start"]) == [8000, 8600]
    assert list(df["exon_number"]) == [2, 1]


def test_transcript_utrs_plus_strand(db):
    df = TranscriptUTRQuery("ENST01").run(db)
    assert df[["start", "end", "utr_type", "length"]].to_dict("records") == [
        {"start": 1000, "end": 1199, "utr_type": "five_prime_UTR", "length": 200},
        {"start": 4300, "end": 5000, "utr_type": "three_prime_UTR", "length": 701},
    ]


def test_transcript_utrs_minus_strand(db):
    df = TranscriptUTRQuery("ENST03").run(db)
    assert df[["start", "utr_type"]].to_dict("records") == [
        {"start": 8000, "utr_type": "three_prime_UTR"},
        {"start": 8801, "utr_type": "five_prime_UTR"},
    ]


def test_transcript_utrs_non_coding(db):
    assert TranscriptUTRQuery("ENST02").run(db).empty


def test_transcript_summary_for_gene(db):
    df = TranscriptSummaryQuery(gene_id="ENSG01").run(db).set_index("transcript_id")
    assert df.loc["ENST01", "n_exons"] == 3
    assert df.loc["ENST01", "exonic_length"] == 2003
    assert df.loc["ENST01", "cds_length"] == 1102
    assert df.loc["ENST01", "utr5_length"] == 200
    assert df.loc["ENST01", "utr3_length"] == 701
    assert df.loc["ENST02", "cds_length"] == 0
    assert df.loc["ENST02", "gene_name"] == "ALPHA"


def test_transcript_summary_all_transcripts(db):
    df = TranscriptSummaryQuery().run(db)
    assert sorted(df["transcript_id"]) == ["ENST01", "ENST02", "ENST03", "ENST04"]
    assert list(df["seqid"]) == ["chr1", "chr1", "chr1", "chr2"]
    minus = df.set_index("transcript_id").loc["ENST03"]
    assert (minus["utr5_length"], minus["utr3_length"], minus["cds_length"]) == (200, 200, 402)


def test_transcript_summary_filters(db):
    df = TranscriptSummaryQuery(transcript_type="protein_coding").run(db)
    assert sorted(df["transcript_id"]) == ["ENST01", "ENST03"]
    assert len(TranscriptSummaryQuery(limit=1).run(db)) == 1


def test_length_statistics(db):
    df = TranscriptSummaryQuery().run(db)
    stats = TranscriptSummaryQuery.length_statistics(df)
    assert stats["count"] == 4
    assert stats["max"] == 2003.0
    assert stats["median"] == pytest.approx((802 + 1002) / 2)
    assert TranscriptSummaryQuery.length_statistics(df.iloc[0:0])["count"] == 0


def test_genes_by_name(db):
    df = GenesByNameQuery(["BETA", "ALPHA", "MISSING"]).run(db)
    assert list(df["id"]) == ["ENSG02", "ENSG01"]
    assert list(df["gene_type"]) == ["protein_coding", "protein_coding"]


def test_genes_by_name_is_exact(db):
    # "ALPH" is a substring of ALPHA but not a gene name
    assert GenesByNameQuery("ALPH").run(db).empty


def test_features_of_type(db):
    df = FeaturesOfTypeQuery("gene", attributes=["gene_name"]).run(db)
    assert list(df["gene_name"]) == ["ALPHA", "BETA", "GAMMA"]

    lincrna = FeaturesOfTypeQuery("gene", gene_type="lincRNA").run(db)
    assert list(lincrna["id"]) == ["ENSG03"]

    assert len(FeaturesOfTypeQuery("exon", limit=2).run(db)) == 2


def test_region_query(db):
    df = RegionQuery("chr1", 1900, 2600, featuretype="exon").run(db)
    assert len(df) == 2
    assert set(zip(df["start"], df["end"])) == {(2000, 2500)}

    within = RegionQuery("chr1", 7000, 10000, featuretype="gene", completely_within=True).run(db)
    assert list(within["id"]) == ["ENSG02"]

    assert RegionQuery("chr3", 1, 1000).run(db).empty


def test_featuretype_counts(db):
    df = FeatureTypeCountsQuery().run(db)
    assert df.iloc[0].to_dict() == {"featuretype": "exon", "count": 8}
    assert dict(zip(df["featuretype"], df["count"]))["start_codon"] == 1


def test_raw_sql(db):
    df = RawSQLQuery(
        "SELECT id, start, end FROM features WHERE featuretype = ? AND seqid = ? ORDER BY start",
        ["gene", "chr1"],
    ).run(db)
    assert df.to_dict("records") == [
        {"id": "ENSG01", "start": 1000, "end": 5000},
        {"id": "ENSG02", "start": 8000, "end": 9000},
    ]


def test_raw_sql_over_relations(db):
    df = RawSQLQuery(
        "SELECT DISTINCT r.child FROM relations r JOIN features f ON f.id = r.child "
        "WHERE r.parent = 'ENSG02' AND f.featuretype = 'transcript'"
    ).run(db)
    assert list(df["child"]) == ["ENST03"]
