# dat2sql/grammars/enzyme.py
"""
ENZYME nomenclature flat-file grammar (`enzyme.dat`).

    ID   1.1.1.1
    DE   Alcohol dehydrogenase.
    AN   Aldehyde reductase.
    CA   (1) A primary alcohol + NAD(+) = an aldehyde + NADH + H(+).
    CF   Zn(2+) or Fe cation.
    CC   -!- Acts on primary or secondary alcohols or hemi-acetals with very
    CC       broad specificity.
    PR   PROSITE; PDOC00058;
    DR   P07327, ADH1A_HUMAN;  P28469, ADH1A_MACMU;
    //

A field that is repeated after it was closed is folded into a list instead of
being rejected.
"""
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql.dml import Insert

from ..emitter import RelationalEmitter, Statements
from ..errors import FieldFormatError
from ..models import (
    ENZYME_TABLES,
    ENZYME_VIEWS,
    EnzymeAttrName,
    EnzymeAttrValue,
    EnzymeEntry,
    EnzymeListAttr,
    EnzymeScalarAttr,
    EnzymeUniProt,
    EnzymeUniProtLink,
)
from ..records import Record, UniProtRef
from .base import FieldSpec, Grammar, Identifier, Item, Scalar, Value, always, ends_with, never, split_units


def parse_id(text: str) -> List[Item]:
    ec = text.strip()
    if not ec or " " in ec:
        raise FieldFormatError("ID", text, "expected one EC number")
    return [Identifier(ec)]


def parse_de(text: str) -> List[Item]:
    description = text.strip().rstrip(".").strip()
    if not description:
        raise FieldFormatError("DE", text, "empty description")
    return [Scalar("DE", description)]


def sentence(name: str):
    """One `.`-terminated value, possibly spread over several lines."""
    def parse(text: str) -> List[Item]:
        value = text.strip().rstrip(".").strip()
        return [Value(name, value)] if value else []
    return parse


def parse_cf(text: str) -> List[Item]:
    return [Value("CF", c) for c in split_units(text, ";", ".")]


def _cc_starts_unit(payload: str) -> bool:
    return payload.lstrip().startswith("-!-")


def parse_cc(text: str) -> List[Item]:
    text = text.strip()
    if text.startswith("-!-"):
        text = text[3:].strip()
    return [Value("CC", text)] if text else []


def parse_pr(text: str) -> List[Item]:
    units = split_units(text, ";", "")
    if len(units) < 2:
        raise FieldFormatError("PR", text, "expected database and identifier")
    return [Value("PR", u) for u in units[1:]]


def parse_dr(text: str) -> List[Item]:
    refs: List[Item] = []
    for unit in split_units(text, ";", ""):
        accession, sep, entry_name = unit.partition(",")
        accession, entry_name = accession.strip(), entry_name.strip()
        if not sep or not accession or not entry_name:
            raise FieldFormatError("DR", text, f"expected 'ACCESSION, ENTRY_NAME', got {unit!r}")
        refs.append(UniProtRef(accession=accession, entry_name=entry_name))
    return refs


FIELDS: Dict[str, FieldSpec] = {
    "ID": FieldSpec("ID", parse_id, complete=always),
    "DE": FieldSpec("DE", parse_de, complete=ends_with(".")),
    "AN": FieldSpec("AN", sentence("AN"), complete=ends_with(".")),
    "CA": FieldSpec("CA", sentence("CA"), complete=ends_with(".")),
    "CF": FieldSpec("CF", parse_cf, complete=ends_with(".")),
    "CC": FieldSpec("CC", parse_cc, complete=never, starts_unit=_cc_starts_unit),
    "PR": FieldSpec("PR", parse_pr, complete=ends_with(";")),
    "DR": FieldSpec("DR", parse_dr, complete=ends_with(";")),
}


def entry_status(description: str | None) -> str:
    if description and description.startswith("Transferred entry"):
        return "transferred"
    if description and description.startswith("Deleted entry"):
        return "deleted"
    return "active"


class EnzymeEmitter(RelationalEmitter):
    entity_table = EnzymeEntry.__table__
    scalar_table = EnzymeScalarAttr.__table__
    list_table = EnzymeListAttr.__table__
    id_column = "ec_number"
    entity_fields = frozenset({"DE"})

    def matching_refs(self, record: Record) -> List[UniProtRef]:
        species = self.context.config.species
        if not species:
            return list(record.uniprot_refs)
        return [ref for ref in record.uniprot_refs if ref.species == species]

    def accept(self, record: Record) -> bool:
        # with an organism filter, records without a matching entry are skipped whole
        return not self.context.config.species or bool(self.matching_refs(record))

    def entity_row(self, record: Record) -> Insert:
        description = record.first("DE")
        return insert(self.entity_table).values(
            ec_number=record.identifier,
            description=description,
            status=entry_status(description),
        ).on_conflict_do_nothing()

    def nested_rows(self, record: Record, out: Statements):
        shared = EnzymeUniProt.__table__
        linked = set()
        for ref in self.matching_refs(record):
            if ref.key in linked:
                continue
            linked.add(ref.key)
            if self.context.xref_keys.add(("uniprot",) + ref.key):
                out.append(
                    insert(shared).values(accession=ref.accession, entry_name=ref.entry_name)
                    .on_conflict_do_nothing()
                )
            ref_id = select(shared.c.id).where(
                shared.c.accession == ref.accession, shared.c.entry_name == ref.entry_name
            ).scalar_subquery()
            out.append(
                insert(EnzymeUniProtLink.__table__)
                .values(ec_number=record.identifier, uniprot_ref_id=ref_id)
                .on_conflict_do_nothing()
            )


GRAMMAR = Grammar(
    name="enzyme",
    fields=FIELDS,
    singleton_policy="fold",
    emitter_factory=EnzymeEmitter,
    name_table=EnzymeAttrName.__table__,
    value_table=EnzymeAttrValue.__table__,
    tables=ENZYME_TABLES,
    views=ENZYME_VIEWS,
)
