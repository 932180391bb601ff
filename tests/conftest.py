import csv
from pathlib import Path

import pytest

PROBES_HEADER = ["probe_id", "probe_name", "gene_id", "gene_symbol", "gene_name", "entrez_id", "chromosome"]
SAMPLES_HEADER = [
    "structure_id", "slab_num", "well_id", "slab_type", "structure_acronym", "structure_name",
    "polygon_id", "mri_voxel_x", "mri_voxel_y", "mri_voxel_z", "mni_x", "mni_y", "mni_z",
]

PROBES = [
    ["P1", "A_23_P20713", "729", "C8G", "complement component 8, gamma polypeptide", "733", "9"],
    ["P2", "CUST_15185_PI416261804", "729", "C8G", "complement component 8, gamma polypeptide", "7330", "9"],
    ["P3", "A_32_P168349", "", "", "", "", ""],
    ["P4", "A_23_P100001", "1", "OLD1", "retired gene", "4242", "1"],
    ["P5", "A_23_P100002", "2", "AMB1", "ambiguous gene", "999", "2"],
    ["P6", "A_23_P256956", "731", "C9", "complement component 9", "735", "5"],
]
SAMPLES = [
    ["4077", "22", "594", "P", "LHM", "lateral hypothalamic area, mammillary region", "2", "69", "112", "150", "-6.2", "-18.1", "-11.4"],
    ["4077", "22", "595", "P", "LHM-other", "second name ignored", "3", "70", "113", "150", "-5.9", "-17.8", "-11.6"],
]
EXPRESSION = [
    ["P1", "10", "20"],
    ["P2", "10", "30"],
    ["P3", "1", "2"],
    ["P6", "5.5", "7.25"],
]
CALLS = [
    ["P1", "1", "1"],
    ["P2", "1", "1"],
    ["P3", "1", "1"],
    ["P6", "1", "0"],
]


def write_csv(path: Path, rows, header=None) -> Path:
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        if header:
            writer.writerow(header)
        writer.writerows(rows)
    return path


def write_dataset(directory: Path, probes=PROBES, samples=SAMPLES, expression=EXPRESSION, calls=CALLS) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    write_csv(directory / "Probes.csv", probes, PROBES_HEADER)
    write_csv(directory / "SampleAnnot.csv", samples, SAMPLES_HEADER)
    write_csv(directory / "MicroarrayExpression.csv", expression)
    write_csv(directory / "PACall.csv", calls)
    return directory


@pytest.fixture
def resolver():
    from allen_brain_expression.resolver import MappingGeneResolver

    rslv = MappingGeneResolver()
    rslv.add_entry("9606", "733", ["G1"])
    rslv.add_entry("9606", "7330", ["G1"])
    rslv.add_entry("9606", "735", ["C9"])
    rslv.add_entry("9606", "999", ["AMB1", "AMB2"])
    return rslv


@pytest.fixture
def dataset_dir(tmp_path):
    return write_dataset(tmp_path / "donor1")


@pytest.fixture
def writer():
    from allen_brain_expression.items import MemoryItemWriter

    return MemoryItemWriter()


@pytest.fixture
def converter(writer, resolver):
    from allen_brain_expression.converter import AllenBrainExpressionConverter

    return AllenBrainExpressionConverter(writer, resolver)
