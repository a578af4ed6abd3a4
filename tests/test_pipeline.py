import logging

import pytest

from visiogen.models import FilteredKmers
from visiogen.pipeline import (
    KmerOptions,
    filter_kmers,
    kmer_coordinates,
    log_and_write_kmers,
    log_kmers_with_coords,
    search_kmers,
    write_all_keys_to_file,
)


def _item(kmers, strand="+"):
    return FilteredKmers(
        gene="geneA",
        start=1,
        end=40,
        kmers=kmers,
        strand=strand,
        kmer_hits={k: ["idx.cbl"] for k in kmers},
    )


def test_options_defaults_match_command_line_defaults():
    options = KmerOptions()
    assert options.kmer_size == 50
    assert options.min_gc == 44
    assert options.max_gc == 72
    assert options.allow_outside is True
    assert options.skip_gc is False
    assert options.center_base is None


def test_filter_by_center_base_only():
    item = _item({"ACGTA": [0], "AGCTA": [5]})
    result = filter_kmers([item], 5, "C", 44, 72, True)
    assert list(result[0].kmers) == ["ACGTA"]
    assert result[0].kmers["ACGTA"] == [0]


def test_filter_by_gc_content():
    item = _item({"GAACT": [0], "GGAGG": [1], "AAAAA": [2]})
    result = filter_kmers([item], 5, None, 44, 72, False)
    assert set(result[0].kmers) == {"GAACT"}


def test_filter_keeps_metadata_and_clears_hits():
    item = _item({"GAACT": [3, 9]}, strand="-")
    (result,) = filter_kmers([item], 5, None, 0, 100, False)
    assert (result.gene, result.start, result.end, result.strand) == (
        item.gene,
        item.start,
        item.end,
        item.strand,
    )
    assert result.kmer_hits == {}
    assert item.kmer_hits == {"GAACT": ["idx.cbl"]}


def test_filter_with_center_base_rejects_tiny_kmer_size():
    with pytest.raises(ValueError):
        filter_kmers([_item({"A": [0]})], 1, "A", 0, 100, True)


def test_coordinates_forward_strand():
    item = _item({"AAA": [1, 5], "CCC": [7]})
    coords = kmer_coordinates(item, 3)
    assert {(k, s) for k, s, _ in coords} == {("AAA", 1), ("AAA", 5), ("CCC", 7)}
    assert all(end - start == 3 for _, start, end in coords)


def test_coordinates_reverse_strand_clamps_at_zero():
    item = _item({"AAA": [1, 5]}, strand="-")
    coords = dict(((k, s), e) for k, s, e in kmer_coordinates(item, 3))
    assert coords[("AAA", 1)] == 0
    assert 5 - coords[("AAA", 5)] == 3


def test_log_kmers_with_coords_messages(caplog):
    item = _item({"AAA": [1, 5]})
    with caplog.at_level(logging.INFO, logger="visiogen.pipeline"):
        log_kmers_with_coords(item, 3)
    expected = [f"{k},{s},{e}" for k, s, e in kmer_coordinates(item, 3)]
    assert [record.getMessage() for record in caplog.records] == expected


def test_write_all_keys_format(tmp_path):
    items = [
        FilteredKmers("g", 0, 10, {"ACG": [3, 7], "TTT": [1]}),
        FilteredKmers("h", 0, 10, {"GGG": [2]}),
    ]
    path = write_all_keys_to_file(items, tmp_path)
    assert path.parent == tmp_path
    assert path.suffix == ".fasta"
    lines = path.read_text().splitlines()
    assert lines[0] == ">g_1    3,7 : 2 copies"
    assert lines[1] == "ACG"
    assert lines[2].startswith(">g_2    1 : 1 copies")
    assert lines[4].startswith(">h_1")
    assert lines[5] == "GGG"
    assert len(lines) == 6


def test_log_and_write_kmers_writes_file(tmp_path):
    items = [FilteredKmers("g", 0, 10, {"ACG": [3]})]
    path = log_and_write_kmers(items, 3, tmp_path)
    assert path.exists()
    assert "ACG" in path.read_text().splitlines()


@pytest.fixture
def region_files(tmp_path):
    fasta = tmp_path / "genome.fa"
    fasta.write_text(">chr1\nACGTACGTTT\n")
    gff = tmp_path / "genes.gff"
    gff.write_text("##gff-version 3\nchr1\tsrc\tgene\t1\t4\t.\t+\t.\tName=geneA\n")
    return fasta, gff


def test_search_kmers_only_inside_gene(region_files):
    fasta, gff = region_files
    options = KmerOptions(kmer_size=3, skip_gc=True)
    (result,) = search_kmers(options, fasta, str(gff), ["geneA"])
    assert result.gene == "geneA"
    assert set(result.kmers) == {"GTA", "TAC"}
    assert all(1 <= p <= 4 for positions in result.kmers.values() for p in positions)


def test_search_kmers_allowing_any_position(region_files):
    fasta, gff = region_files
    options = KmerOptions(kmer_size=3, skip_gc=True, allow_outside=False)
    (result,) = search_kmers(options, fasta, str(gff), ["geneA"])
    strict = search_kmers(KmerOptions(kmer_size=3, skip_gc=True), fasta, str(gff), ["geneA"])
    assert set(strict[0].kmers) < set(result.kmers)
    assert all(any(1 <= p <= 4 for p in positions) for positions in result.kmers.values())


def test_search_kmers_unknown_gene(region_files):
    fasta, gff = region_files
    assert search_kmers(KmerOptions(kmer_size=3, skip_gc=True), fasta, str(gff), ["nope"]) == []


def test_search_kmers_missing_fasta(tmp_path):
    with pytest.raises(OSError):
        search_kmers(KmerOptions(kmer_size=3), tmp_path / "missing.fa", "x.gff", ["g"])