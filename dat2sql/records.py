# dat2sql/records.py
"""
In-memory shape of one accumulated record and its nested sub-records.

Records are frozen once the terminator line is seen; the JSON dump written
by the `json` output format is reversible through `Record.model_validate_json`.
"""
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class DbXref(BaseModel):
    """`DR   EMBL; M14752; AAA51561.1; -; mRNA.`"""
    model_config = ConfigDict(frozen=True)

    database: str
    identifier: str
    detail: Optional[str] = None


class Interaction(BaseModel):
    """A binary interaction between two accessions (CC -!- INTERACTION)."""
    model_config = ConfigDict(frozen=True)

    accession_a: str
    accession_b: str
    experiments: Optional[int] = None

    @property
    def key(self) -> Tuple[str, str]:
        # (X, Y) and (Y, X) describe the same pair
        return tuple(sorted((self.accession_a, self.accession_b)))  # type: ignore[return-value]


class Isoform(BaseModel):
    """One `IsoId=` of a CC -!- ALTERNATIVE PRODUCTS block."""
    model_config = ConfigDict(frozen=True)

    iso_id: str
    name: Optional[str] = None
    sequence_note: Optional[str] = None


class UniProtRef(BaseModel):
    """`DR   P07327, ADH1A_HUMAN;` in an ENZYME record."""
    model_config = ConfigDict(frozen=True)

    accession: str
    entry_name: str

    @property
    def species(self) -> str:
        return self.entry_name.rpartition("_")[2]

    @property
    def key(self) -> Tuple[str, str]:
        return (self.accession, self.entry_name)


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)

    grammar: str
    identifier: Optional[str] = None
    scalars: Dict[str, str] = {}
    lists: Dict[str, List[str]] = {}
    accessions: List[str] = []
    db_xrefs: List[DbXref] = []
    interactions: List[Interaction] = []
    isoforms: List[Isoform] = []
    uniprot_refs: List[UniProtRef] = []

    def first(self, name: str) -> Optional[str]:
        """Scalar value of `name`, or the first element if it was folded into a list."""
        if name in self.scalars:
            return self.scalars[name]
        values = self.lists.get(name)
        return values[0] if values else None

    def __str__(self):
        return f"Record({self.grammar}:{self.identifier or '<none>'})"
