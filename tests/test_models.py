from visiogen.models import FilteredKmers


def _sample() -> FilteredKmers:
    return FilteredKmers(
        gene="geneA",
        start=10,
        end=40,
        kmers={"ACG": [10, 20], "CGT": [11]},
        strand="-",
        kmer_hits={"ACG": ["one.cbl"]},
    )


def test_copy_is_equal_to_original():
    original = _sample()
    assert original.copy() == original


def test_copy_kmers_are_independent():
    original = _sample()
    duplicate = original.copy()
    duplicate.kmers["ACG"].append(99)
    duplicate.kmers["TTT"] = [1]
    assert original.kmers == {"ACG": [10, 20], "CGT": [11]}


def test_copy_hits_are_independent():
    original = _sample()
    duplicate = original.copy()
    duplicate.kmer_hits["ACG"].append("two.cbl")
    assert original.kmer_hits == {"ACG": ["one.cbl"]}
    assert duplicate.kmer_hits["ACG"] == ["one.cbl", "two.cbl"]


def test_separate_instances_do_not_share_default_mappings():
    first = FilteredKmers(gene="a", start=0, end=1)
    second = FilteredKmers(gene="b", start=0, end=1)
    first.kmers["AAA"] = [0]
    assert second.kmers == {}