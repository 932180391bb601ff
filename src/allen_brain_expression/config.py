"""Converter settings."""
from __future__ import annotations

from pydantic import Field

from .models import ConfiguredBaseModel

HUMAN_TAXON_ID = "9606"


class ConverterConfig(ConfiguredBaseModel):
    """
    Settings shared by the Allen converters. Defaults match the Allen Human Brain Atlas
    microarray download layout.
    """
    taxon_id: str = Field(default=HUMAN_TAXON_ID, description="""NCBI taxon of the donor organism.""")
    data_source_name: str = Field(default="Allen Brain Atlas")
    data_set_title: str = Field(default="Allen Brain Expression data set")
    ontology_data_set_title: str = Field(default="Allen Brain Structure Ontology")
    probes_file: str = Field(default="Probes.csv")
    samples_file: str = Field(default="SampleAnnot.csv")
    expression_file: str = Field(default="MicroarrayExpression.csv")
    call_file: str = Field(default="PACall.csv")
    ontology_file: str = Field(default="Ontology.csv")
    detection_flag: str = Field(default="1", description="""PACall value meaning the probe was detected.""")
    delimiter: str = Field(default=",", min_length=1, max_length=1)
