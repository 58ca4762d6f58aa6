"""Tests for ENA sequence name reconciliation."""

from contigalias.entities import ChromosomeEntity
from contigalias.merge import add_ena_sequence_names


def _names(sequences):
    return {s.insdc_accession: s.ena_sequence_name for s in sequences}


class TestAddEnaSequenceNames:
    def test_matched_unmatched_and_new(self):
        """Matched sequences get ENA names, unmatched keep theirs, new ones are added."""
        target = [ChromosomeEntity("CM001"), ChromosomeEntity("CM002", ena_sequence_name="chrX")]
        source = [
            ChromosomeEntity("CM001", ena_sequence_name="chr1"),
            ChromosomeEntity("CM003", ena_sequence_name="chr3"),
        ]
        merged = add_ena_sequence_names(source, target)

        assert _names(merged) == {"CM001": "chr1", "CM002": "chrX", "CM003": "chr3"}
        assert target[0].ena_sequence_name == "chr1"
        assert target[1].ena_sequence_name == "chrX"

    def test_target_list_is_not_grown(self):
        """Unmatched source sequences are not added to the target list."""
        target = [ChromosomeEntity("CM001")]
        source = [ChromosomeEntity("CM003", ena_sequence_name="chr3")]
        merged = add_ena_sequence_names(source, target)
        assert len(target) == 1
        assert [s.insdc_accession for s in merged] == ["CM001", "CM003"]

    def test_target_entities_updated_by_reference(self):
        """The result holds the target entities themselves, not copies."""
        chrom = ChromosomeEntity("CM001")
        merged = add_ena_sequence_names([ChromosomeEntity("CM001", ena_sequence_name="1")], [chrom])
        assert merged[0] is chrom
        assert chrom.ena_sequence_name == "1"

    def test_archive_name_overwrites(self):
        """The archive name replaces an existing name."""
        target = [ChromosomeEntity("CM001", ena_sequence_name="stale")]
        add_ena_sequence_names([ChromosomeEntity("CM001", ena_sequence_name="fresh")], target)
        assert target[0].ena_sequence_name == "fresh"

    def test_empty_source_is_noop(self):
        """An empty source changes nothing."""
        target = [ChromosomeEntity("CM001", ena_sequence_name="a"), ChromosomeEntity("CM002")]
        merged = add_ena_sequence_names([], target)
        assert merged == target
        assert _names(target) == {"CM001": "a", "CM002": None}

    def test_empty_target_returns_source(self):
        """An empty target yields the source sequences."""
        source = [ChromosomeEntity("CM001", ena_sequence_name="1")]
        merged = add_ena_sequence_names(source, [])
        assert merged == source

    def test_none_collections_are_empty(self):
        """None collections are treated as empty."""
        assert add_ena_sequence_names(None, None) == []
        source = [ChromosomeEntity("CM001", ena_sequence_name="1")]
        assert add_ena_sequence_names(source, None) == source

    def test_duplicate_target_last_wins(self):
        """With duplicate target accessions the last one receives the name."""
        first = ChromosomeEntity("CM001")
        second = ChromosomeEntity("CM001")
        merged = add_ena_sequence_names([ChromosomeEntity("CM001", ena_sequence_name="1")],
                                        [first, second])
        assert len(merged) == 1
        assert merged[0] is second
        assert second.ena_sequence_name == "1"
        assert first.ena_sequence_name is None

    def test_no_duplicate_accessions_in_result(self):
        """The result has one entry per accession."""
        target = [ChromosomeEntity(f"CM00{i}") for i in range(5)]
        source = [ChromosomeEntity(f"CM00{i}", ena_sequence_name=str(i)) for i in range(3, 8)]
        merged = add_ena_sequence_names(source, target)
        accessions = [s.insdc_accession for s in merged]
        assert len(accessions) == len(set(accessions)) == 8

    def test_exact_accession_match_only(self):
        """Accessions match only on the exact version."""
        target = [ChromosomeEntity("CM000663.2")]
        add_ena_sequence_names([ChromosomeEntity("CM000663.1", ena_sequence_name="1")], target)
        assert target[0].ena_sequence_name is None

    def test_idempotent(self):
        """Merging twice gives the same names as merging once."""
        target = [ChromosomeEntity("CM001"), ChromosomeEntity("CM002", ena_sequence_name="x")]
        source = [ChromosomeEntity("CM001", ena_sequence_name="1"),
                  ChromosomeEntity("CM003", ena_sequence_name="3")]
        once = _names(add_ena_sequence_names(source, target))
        twice = _names(add_ena_sequence_names(source, target))
        assert once == twice
