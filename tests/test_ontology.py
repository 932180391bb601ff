import pytest

from conftest import write_csv

HEADER = ["id", "acronym", "name", "parent_structure_id", "hemisphere", "graph_order",
          "structure_id_path", "color_hex_triplet"]
ROWS = [
    ["4005", "Br", "brain", "", "B", "0", "/4005/", "F0F080"],
    ["4006", "GM", "gray matter", "4005", "B", "1", "/4005/4006/", "#E8E8E8"],
    ["4007", "Tel", "telencephalon", "4006", "B", "2", "/4005/4006/4007/", ""],
    ["4008", "CeC", "cerebral cortex", "4007", "B", "3", "/4005/4006/4007/4008/", "F0F0FF"],
    ["9999", "X", "orphan", "1234", "B", "4", "/1234/9999/"],
]


@pytest.fixture
def ontology_path(tmp_path):
    return write_csv(tmp_path / "Ontology.csv", ROWS, HEADER)


def _convert(path):
    from allen_brain_expression.items import MemoryItemWriter
    from allen_brain_expression.ontology import BrainOntologyConverter

    writer = MemoryItemWriter()
    converter = BrainOntologyConverter(writer)
    count = converter.process(str(path))
    return writer, count


def test_terms_and_parents(ontology_path):
    writer, count = _convert(ontology_path)
    assert count == 5
    terms = {t.attributes["identifier"]: t for t in writer.of_class("BrainStructureTerm")}
    refs = {k: v.identifier for k, v in terms.items()}

    assert "parents" not in terms["4005"].collections
    assert terms["4006"].collections["parents"] == [refs["4005"]]
    assert terms["4008"].collections["parents"] == [refs["4005"], refs["4006"], refs["4007"]]
    # unknown ancestors are ignored
    assert "parents" not in terms["9999"].collections
    assert terms["4007"].attributes["name"] == "telencephalon"


def test_colors_are_normalized(ontology_path):
    writer, _ = _convert(ontology_path)
    colors = {t.attributes["identifier"]: t.attributes.get("colorHexTriplet")
              for t in writer.of_class("BrainStructureTerm")}
    assert colors == {"4005": "#F0F080", "4006": "#E8E8E8", "4007": None, "4008": "#F0F0FF", "9999": None}


def test_data_set_is_stored(ontology_path):
    writer, _ = _convert(ontology_path)
    data_sets = writer.of_class("DataSet")
    assert [d.attributes["name"] for d in data_sets] == ["Allen Brain Structure Ontology"]
    source = writer.by_identifier()[data_sets[0].references["dataSource"]]
    assert source.attributes["name"] == "Allen Brain Atlas"


def test_short_row_is_fatal(tmp_path):
    from allen_brain_expression.exceptions import MalformedRowError

    path = write_csv(tmp_path / "Ontology.csv", [["4005", "Br", "brain"]], HEADER)
    with pytest.raises(MalformedRowError):
        _convert(path)


def test_terms_validate_against_schema(ontology_path):
    from allen_brain_expression.validation import ItemValidator

    writer, _ = _convert(ontology_path)
    validator = ItemValidator()
    assert all(validator.errors(item) == [] for item in writer)
