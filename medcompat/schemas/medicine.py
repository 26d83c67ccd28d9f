from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional


class CatalogMedicine(BaseModel):
    id: str
    name: str
    generic_name: str
    drug_class: str
    strength: str
    note: Optional[str] = Field(None, description="Why this drug is a reasonable swap within its class")

    model_config = ConfigDict(frozen=True)


class DrugClass(BaseModel):
    """
    A drug class and the lowercase keywords that identify it inside a free-text medicine name.
    """
    name: str
    keywords: List[str]
    allergy_terms: List[str] = Field(default_factory=list)
    interchangeable_with: List[str] = Field(default_factory=list, description="Other class names usable as swaps")

    model_config = ConfigDict(frozen=True)


class Alternative(BaseModel):
    name: str
    reason: str
