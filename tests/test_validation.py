import pytest


@pytest.fixture(scope="module")
def validator():
    from allen_brain_expression.validation import ItemValidator

    return ItemValidator()


def _item(class_name, **attributes):
    from allen_brain_expression.models import Item

    item = Item(class_name=class_name, identifier="0_1")
    for name, value in attributes.items():
        item.set_attribute(name, value)
    return item


def test_converted_items_are_valid(validator, converter, writer, dataset_dir):
    converter.process(str(dataset_dir))
    for item in writer:
        assert validator.errors(item) == [], item


def test_unknown_class(validator):
    from allen_brain_expression.exceptions import ItemValidationError

    with pytest.raises(ItemValidationError):
        validator.validate(_item("Cluster"))


def test_missing_required_slots(validator):
    problems = validator.errors(_item("Probe", primaryIdentifier="P1"))
    assert problems == ["missing required slot 'gene'"]


def test_attribute_types(validator):
    result = _item("ProbeResult", paCall="yes", expressionValue=2)
    result.set_reference("probe", "1_1")
    result.set_reference("sample", "2_1")
    problems = validator.errors(result)
    assert problems == ["'paCall' expects boolean, got str"]


def test_boolean_is_not_an_integer(validator):
    location = _item("BrainLocation", mriVoxelX=True)
    assert validator.errors(location) == ["'mriVoxelX' expects integer, got boolean"]


def test_reference_and_collection_shapes(validator):
    gene = _item("Gene", primaryIdentifier="G1")
    gene.set_reference("organism", "0_1")
    gene.set_reference("dataSets", "3_1")
    gene.add_to_collection("organism", "0_1")
    problems = validator.errors(gene)
    assert "'dataSets' is not a single-valued reference slot" in problems
    assert "'organism' is not a multivalued reference slot" in problems


def test_reference_used_as_attribute(validator):
    probe = _item("Probe", primaryIdentifier="P1", gene="G1")
    assert "'gene' is not a scalar slot" in validator.errors(probe)


def test_pattern(validator):
    term = _item("BrainStructureTerm", identifier="4005", colorHexTriplet="FF0000")
    assert len(validator.errors(term)) == 1
    term.set_attribute("colorHexTriplet", "#FF0000")
    assert validator.errors(term) == []
