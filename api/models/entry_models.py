# File: api/models/entry_models.py
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel
from typing import List, Optional


class CamelModel(BaseModel):
    """Wire format is camelCase; Python attributes stay snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Affiliation(CamelModel):
    id: str
    name: str


class Author(CamelModel):
    id: str
    first_name: str
    last_name: str = ""
    affiliations: List[Affiliation] = []
    orcid: Optional[str] = None
    is_current_user: bool = False
    order: int = Field(default=0, ge=0)


class MoleculeData(CamelModel):
    molfile_v3: str
    id_code: str
    smiles: Optional[str] = None
    molecular_formula: str
    molecular_weight: float
    monoisotopic_mass: float


class MassbankFileRef(BaseModel):
    filename: str
    path: str


AuthorList = TypeAdapter(List[Author])
