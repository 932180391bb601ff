from allen_brain_expression.models import ResolutionStatus
from allen_brain_expression.resolver import MappingGeneResolver


def test_unique_mapping_resolves(resolver):
    result = resolver.resolve("9606", "733")
    assert result.resolved
    assert result.identifier == "G1"


def test_ambiguous_and_missing_are_distinguishable(resolver):
    ambiguous = resolver.resolve("9606", "999")
    missing = resolver.resolve("9606", "12345")
    assert ambiguous.status == ResolutionStatus.AMBIGUOUS
    assert missing.status == ResolutionStatus.NOT_FOUND
    assert not ambiguous.resolved and not missing.resolved
    assert ambiguous.identifier is None and missing.identifier is None


def test_taxon_scoping(resolver):
    assert resolver.has_taxon("9606")
    assert not resolver.has_taxon("10090")
    assert resolver.resolve("10090", "733").status == ResolutionStatus.NOT_FOUND


def test_new_entry_invalidates_cached_result():
    rslv = MappingGeneResolver()
    rslv.add_entry("9606", "1", ["A"])
    assert rslv.resolve("9606", "1").identifier == "A"
    rslv.add_entry("9606", "1", ["B"])
    assert rslv.resolve("9606", "1").status == ResolutionStatus.AMBIGUOUS
    assert rslv.count_resolutions("9606", "1") == 2


def test_same_canonical_twice_is_not_ambiguous():
    rslv = MappingGeneResolver()
    rslv.add_entry("9606", "1", ["A"])
    rslv.add_entry("9606", "1", ["A"])
    assert rslv.resolve("9606", "1").identifier == "A"


def test_from_file(tmp_path):
    path = tmp_path / "genes.tsv"
    path.write_text(
        "taxon_id\tidentifier\tcanonical_identifier\n"
        "9606\t733\tC8G\n"
        "9606\t999\tAMB1\n"
        "9606\t999\tAMB2\n"
        "9606\t\tEMPTY\n"
        "short\n",
        encoding="utf-8",
    )
    rslv = MappingGeneResolver.from_file(str(path))
    assert rslv.resolve("9606", "733").identifier == "C8G"
    assert rslv.resolve("9606", "999").status == ResolutionStatus.AMBIGUOUS
    assert rslv.resolve("9606", "").status == ResolutionStatus.NOT_FOUND
