import pytest

from visiogen.seq import (
    Strand,
    calculate_gc,
    coords_from_gene_name,
    filter_hashmap,
    gc_content_on_each_half,
    parse_gff_records,
    reverse_complement,
)

GFF_TEXT = (
    "##gff-version 3\n"
    "chr1\tsrc\tgene\t1\t3\t.\t+\t.\tID=g1;Name=alpha\n"
    "# a comment\n"
    "\n"
    "chr1\tsrc\tgene\t4\t6\t.\t-\t.\tID=g2;Name=beta\n"
    "chr1\tsrc\tgene\t7\t9\t.\t.\t.\tID=g3;Name=gamma\n"
)


@pytest.mark.parametrize(
    "sequence, expected",
    [("ATCG", "CGAT"), ("AAGCTT", "AAGCTT"), ("GGCC", "GGCC")],
)
def test_reverse_complement(sequence, expected):
    assert reverse_complement(sequence) == expected


def test_reverse_complement_keeps_case_and_iupac():
    assert reverse_complement("acgN") == "Ncgt"
    assert reverse_complement("RY") == "RY"


def test_reverse_complement_is_an_involution():
    sequence = "ACGTTGCAGGATCCNRYKM"
    assert reverse_complement(reverse_complement(sequence)) == sequence


@pytest.mark.parametrize(
    "sequence, expected", [("ATGC", 50), ("GGGG", 100), ("ATAT", 0)]
)
def test_calculate_gc(sequence, expected):
    assert calculate_gc(sequence) == expected


def test_calculate_gc_empty_raises():
    with pytest.raises(ValueError):
        calculate_gc("")


@pytest.mark.parametrize(
    "kmer, expected",
    [("ATGTCAT", (33, 33)), ("GGCCGG", (100, 100)), ("ATATAT", (0, 0))],
)
def test_gc_content_on_each_half(kmer, expected):
    assert gc_content_on_each_half(kmer, len(kmer)) == expected


def test_filter_hashmap_all_versus_any():
    kmers = {"AAA": [1, 20], "CCC": [2], "GGG": [30]}
    assert filter_hashmap(kmers, 0, 5, allow_outside=True) == {"CCC": [2]}
    assert filter_hashmap(kmers, 0, 5, allow_outside=False) == {
        "AAA": [1, 20],
        "CCC": [2],
    }


def test_filter_hashmap_bounds_are_inclusive():
    kmers = {"AAA": [0], "CCC": [5], "GGG": [6]}
    assert filter_hashmap(kmers, 0, 5, allow_outside=False) == {"AAA": [0], "CCC": [5]}


def test_parse_gff_records():
    records = list(parse_gff_records(GFF_TEXT.splitlines(keepends=True)))
    assert [r.attributes["Name"] for r in records] == ["alpha", "beta", "gamma"]
    assert [r.strand for r in records] == [Strand.FORWARD, Strand.REVERSE, None]
    assert (records[1].start, records[1].end) == (4, 6)
    assert records[0].attributes["ID"] == "g1"


def test_parse_gff_rejects_wrong_column_count():
    with pytest.raises(ValueError):
        list(parse_gff_records(["chr1\tsrc\tgene\t1\t3\n"]))


def test_parse_gff_rejects_bad_coordinates():
    with pytest.raises(ValueError):
        list(parse_gff_records(["chr1\tsrc\tgene\tx\t3\t.\t+\t.\tName=a\n"]))


def test_coords_from_gene_name(tmp_path):
    gff = tmp_path / "genes.gff"
    gff.write_text(GFF_TEXT)
    assert coords_from_gene_name(str(gff), "alpha") == (1, 3, Strand.FORWARD)
    assert coords_from_gene_name(str(gff), "beta") == (4, 6, Strand.REVERSE)
    assert coords_from_gene_name(str(gff), "gamma") == (7, 9, Strand.FORWARD)
    assert coords_from_gene_name(str(gff), "delta") is None


def test_coords_from_missing_file_is_none(tmp_path):
    assert coords_from_gene_name(str(tmp_path / "absent.gff"), "alpha") is None


def test_strand_string_form():
    records = list(parse_gff_records(GFF_TEXT.splitlines(keepends=True)))
    assert str(records[0].strand) == "+"
    assert str(records[1].strand) == "-"