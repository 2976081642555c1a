# dat2sql/grammars/uniprot.py
"""
UniProtKB flat-file grammar (`*.dat`, Swiss-Prot / TrEMBL).

    ID   ABL1_HUMAN              Reviewed;        1130 AA.
    AC   P00519; Q13869;
    ...
    SQ   SEQUENCE   1130 AA;  122873 MW;  B2B4AE1EFF6CE6B0 CRC64;
         MLEICLKLVG CVPKALAAAL ...
    //

A second, different ID line inside one record is fatal for the run.
"""
import re
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql.dml import Insert

from ..emitter import RelationalEmitter, Statements
from ..errors import FieldFormatError
from ..models import (
    UNIPROT_TABLES,
    UNIPROT_VIEWS,
    UniProtAccession,
    UniProtAttrName,
    UniProtAttrValue,
    UniProtDbXref,
    UniProtEntry,
    UniProtInteraction,
    UniProtInteractionLink,
    UniProtIsoform,
    UniProtListAttr,
    UniProtScalarAttr,
)
from ..records import DbXref, Interaction, Isoform, Record
from .base import (
    Accession,
    FieldSpec,
    Grammar,
    Identifier,
    Item,
    Scalar,
    Value,
    always,
    ends_with,
    ignore,
    join_lines,
    join_words,
    never,
    split_units,
    strip_evidence,
)

# ---------------------------------------------------------------------
# Identification and organism lines
# ---------------------------------------------------------------------

_STATUS = {"Reviewed": "sp", "Unreviewed": "tr"}


def parse_id(text: str) -> List[Item]:
    parts = text.split()
    if not parts:
        raise FieldFormatError("ID", text, "no entry name")
    items: List[Item] = [Identifier(parts[0])]
    m = re.search(r"\b(Reviewed|Unreviewed)\b", text)
    if m:
        items.append(Scalar("DB", _STATUS[m.group(1)]))
    m = re.search(r"(\d+)\s+AA\b", text)
    if m:
        items.append(Scalar("LENGTH", m.group(1)))
    return items


def parse_ac(text: str) -> List[Item]:
    return [Accession(a) for a in split_units(text, ";", "")]


def parse_os(text: str) -> List[Item]:
    name = text.strip().rstrip(".").strip()
    if not name:
        raise FieldFormatError("OS", text, "empty organism")
    return [Scalar("OS", name)]


def parse_ox(text: str) -> List[Item]:
    m = re.search(r"NCBI_TaxID=(\d+)", text)
    if not m:
        raise FieldFormatError("OX", text, "no NCBI_TaxID")
    return [Scalar("OX", m.group(1))]


def list_of(name: str, sep: str = ";", tail: str = "."):
    """Parser for plain `a; b; c.` list lines stored under attribute `name`."""
    def parse(text: str) -> List[Item]:
        return [Value(name, strip_evidence(u)) for u in split_units(text, sep, tail)]
    return parse


def whole_line(name: str):
    def parse(text: str) -> List[Item]:
        value = strip_evidence(text).rstrip(".").strip()
        return [Value(name, value)] if value else []
    return parse


def parse_pe(text: str) -> List[Item]:
    value = text.strip().rstrip(";").strip()
    if not value:
        raise FieldFormatError("PE", text, "empty protein existence")
    return [Scalar("PE", value)]


def parse_rx(text: str) -> List[Item]:
    return [Value("PUBMED", u.split("=", 1)[1].strip())
            for u in split_units(text, ";", "")
            if u.startswith("PubMed=")]


# ---------------------------------------------------------------------
# DE and GN
# ---------------------------------------------------------------------

_DE_CATEGORY = re.compile(r"^(RecName|AltName|SubName|Flags):\s*(.*)$")


def parse_de(text: str) -> List[Item]:
    text = strip_evidence(text.strip())
    if text.endswith(":"):
        # "Contains:" / "Includes:" open a sub-section, nothing to store
        return []
    text = text.rstrip(";").strip()
    m = _DE_CATEGORY.match(text)
    body = m.group(2) if m else text
    if m and m.group(1) == "Flags":
        return [Value("FLAGS", f) for f in split_units(body, ";", "")]
    key, sep, value = body.partition("=")
    if not sep:
        # pre-2008 free text description
        name = text.rstrip(".").strip()
        return [Value("DE", name)] if name else []
    key, value = key.strip(), value.strip()
    if not value:
        raise FieldFormatError("DE", text, f"empty {key}")
    if key == "EC":
        return [Value("DE", f"EC {value}")]
    if key in ("Full", "Short"):
        return [Value("DE", value)]
    return [Value("DE_" + key.upper(), value)]


def _gn_complete(text: str) -> bool:
    return text.rstrip().endswith(";") or text.strip() == "and"


def parse_gn(text: str) -> List[Item]:
    if text.strip() == "and":
        return []
    items: List[Item] = []
    for unit in split_units(strip_evidence(text), ";", ""):
        key, sep, value = unit.partition("=")
        if not sep:
            raise FieldFormatError("GN", text, f"expected key=value, got {unit!r}")
        names = [v.strip() for v in value.split(",") if v.strip()]
        if key == "Name":
            items.extend(Value("GN", n) for n in names[:1])
        elif key == "Synonyms":
            items.extend(Value("GN", n) for n in names)
        elif key in ("OrderedLocusNames", "ORFNames"):
            items.extend(Value("GN_LOCUS", n) for n in names)
    return items


# ---------------------------------------------------------------------
# CC topics, including the two nested grammars
# ---------------------------------------------------------------------

def _cc_starts_unit(payload: str) -> bool:
    return payload.lstrip().startswith(("-!-", "---"))


def parse_interactions(body: str) -> List[Item]:
    """
    Entries of a `-!- INTERACTION:` block, joined into one line.

        P00519; P46108: CRK; NbExp=3; IntAct=EBI-375543, EBI-886;
        P46108:CRK; NbExp=3; IntAct=EBI-375543, EBI-886;     (older layout)
        Self; NbExp=4; IntAct=EBI-375543, EBI-375543;

    An empty accession stands for the record's own primary accession.
    """
    items: List[Item] = []
    participants: List[str] = []
    experiments: Optional[int] = None
    for unit in split_units(body, ";", ""):
        key, sep, value = unit.partition("=")
        if sep and key.strip() in ("NbExp", "IntAct"):
            if key.strip() == "NbExp":
                experiments = int(value.strip())
                continue
            # IntAct closes the entry
            if len(participants) == 1:
                participants.insert(0, "")
            if len(participants) != 2:
                raise FieldFormatError("CC", body, f"cannot read interaction {participants!r}")
            a, b = participants
            items.append(Interaction(accession_a=a, accession_b=b, experiments=experiments))
            participants, experiments = [], None
        elif unit == "Self":
            participants.append("")
        elif unit == "Xeno":
            continue
        else:
            participants.append(unit.split(":", 1)[0].strip())
    return items


def parse_alternative_products(body: str) -> List[Item]:
    items: List[Item] = []
    name: Optional[str] = None
    iso_ids: List[str] = []
    sequence: Optional[str] = None

    def close():
        for iso_id in iso_ids:
            items.append(Isoform(iso_id=iso_id, name=name, sequence_note=sequence))

    for unit in split_units(body, ";", ""):
        key, sep, value = unit.partition("=")
        if not sep:
            continue
        key, value = key.strip().lower(), strip_evidence(value)
        if key == "event":
            items.append(Value("ALTERNATIVE PRODUCTS", value))
        elif key == "name":
            close()
            name, iso_ids, sequence = value, [], None
        elif key == "isoid":
            iso_ids = [i.strip() for i in value.split(",") if i.strip()]
        elif key == "sequence":
            sequence = value
    close()
    return items


def parse_cc(text: str) -> List[Item]:
    text = text.strip()
    if not text.startswith("-!-"):
        # copyright block, or stray text outside any topic
        return []
    topic, sep, body = text[3:].partition(":")
    topic, body = topic.strip(), body.strip()
    if not sep or not topic:
        raise FieldFormatError("CC", text, "topic without a colon")
    if topic == "INTERACTION":
        return parse_interactions(body)
    if topic == "ALTERNATIVE PRODUCTS":
        return parse_alternative_products(body)
    body = strip_evidence(body)
    return [Value(topic, body)] if body else []


# ---------------------------------------------------------------------
# DR, FT, SQ
# ---------------------------------------------------------------------

_DR = re.compile(r"^(.*?)\.\s*(\[[^\]]+\])?$")


def parse_dr(text: str) -> List[Item]:
    m = _DR.match(text.strip())
    if not m:
        raise FieldFormatError("DR", text, "missing final period")
    units = [u.strip() for u in m.group(1).split(";")]
    if len(units) < 2 or not units[0] or not units[1]:
        raise FieldFormatError("DR", text, "expected database and identifier")
    detail = "; ".join(units[2:])
    if m.group(2):
        detail = f"{detail} {m.group(2)}".strip()
    return [DbXref(database=units[0], identifier=units[1], detail=detail or None)]


def _ft_starts_unit(payload: str) -> bool:
    return bool(payload) and not payload[0].isspace()


_FT_OLD = re.compile(r"^([<>?]?\d+|\?)\s+([<>?]?\d+|\?)\s*(.*)$")


def parse_ft(text: str) -> List[Item]:
    head, _, rest = text.partition("\n")
    parts = head.split(None, 1)
    if len(parts) < 2:
        raise FieldFormatError("FT", text, "feature without location")
    key, location = parts[0], parts[1].strip()
    note = ""
    old = _FT_OLD.match(location)
    if old:
        start, end, note = old.groups()
        location = start if start == end else f"{start}..{end}"
    qualifiers = ""
    for line in rest.split("\n"):
        qualifiers = join_words(qualifiers, line)
    m = re.search(r'/note="([^"]*)"?', qualifiers)
    if m:
        note = m.group(1)
    value = f"{location} {note.strip().rstrip('.')}".strip()
    return [Value(key, value)]


def parse_sq(text: str) -> List[Item]:
    head, _, rest = text.partition("\n")
    stats = " ".join(head.split())
    if stats.startswith("SEQUENCE"):
        stats = stats[len("SEQUENCE"):].strip()
    items: List[Item] = [Scalar("SQ", stats)]
    residues = "".join(rest.split())
    if residues:
        items.append(Scalar("SEQUENCE", residues))
    return items


# ---------------------------------------------------------------------
# Grammar table
# ---------------------------------------------------------------------

_REFERENCE_TAGS = ("RN", "RP", "RC", "RG", "RA", "RT", "RL")

FIELDS: Dict[str, FieldSpec] = {
    "ID": FieldSpec("ID", parse_id, complete=always),
    "AC": FieldSpec("AC", parse_ac, complete=ends_with(";")),
    "DT": FieldSpec("DT", whole_line("DT"), complete=ends_with(".")),
    "DE": FieldSpec("DE", parse_de, complete=ends_with(";", ":", ".")),
    "GN": FieldSpec("GN", parse_gn, complete=_gn_complete),
    "OS": FieldSpec("OS", parse_os, complete=ends_with(".")),
    "OG": FieldSpec("OG", whole_line("OG"), complete=ends_with(".")),
    "OC": FieldSpec("OC", list_of("OC"), complete=ends_with(";", ".")),
    "OX": FieldSpec("OX", parse_ox, complete=ends_with(";")),
    "OH": FieldSpec("OH", whole_line("OH"), complete=ends_with(".")),
    "RX": FieldSpec("RX", parse_rx, complete=ends_with(";")),
    "CC": FieldSpec("CC", parse_cc, complete=never, starts_unit=_cc_starts_unit),
    "DR": FieldSpec("DR", parse_dr, complete=ends_with(".", "]")),
    "PE": FieldSpec("PE", parse_pe, complete=ends_with(";")),
    "KW": FieldSpec("KW", list_of("KW"), complete=ends_with(";", ".")),
    "FT": FieldSpec("FT", parse_ft, complete=never, join=join_lines, starts_unit=_ft_starts_unit),
    "SQ": FieldSpec("SQ", parse_sq, complete=never, join=join_lines),
}
FIELDS.update({tag: FieldSpec(tag, ignore, complete=always) for tag in _REFERENCE_TAGS})


# ---------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------

class UniProtEmitter(RelationalEmitter):
    entity_table = UniProtEntry.__table__
    scalar_table = UniProtScalarAttr.__table__
    list_table = UniProtListAttr.__table__
    id_column = "uniprot_id"
    entity_fields = frozenset({"DB", "OS", "OX", "SQ", "SEQUENCE"})

    def entity_row(self, record: Record) -> Insert:
        ox = record.scalars.get("OX")
        return insert(self.entity_table).values(
            uniprot_id=record.identifier,
            db=record.scalars.get("DB"),
            os=record.scalars.get("OS"),
            ox=int(ox) if ox else None,
            stats=record.scalars.get("SQ"),
            sequence=record.scalars.get("SEQUENCE"),
        ).on_conflict_do_nothing()

    def link_rows(self, record: Record, out: Statements):
        for accession in dict.fromkeys(record.accessions):
            out.append(
                insert(UniProtAccession.__table__)
                .values(uniprot_id=record.identifier, value_id=self.value_ref(accession, out))
                .on_conflict_do_nothing()
            )
        for xref in record.db_xrefs:
            database_id = self.name_ref(xref.database, out)
            identifier_id = self.value_ref(xref.identifier, out)
            detail_id = self.value_ref(xref.detail, out) if xref.detail else None
            out.append(
                insert(UniProtDbXref.__table__)
                .values(
                    uniprot_id=record.identifier,
                    database_id=database_id,
                    identifier_id=identifier_id,
                    detail_id=detail_id,
                )
                .on_conflict_do_nothing()
            )

    def nested_rows(self, record: Record, out: Statements):
        pairs = UniProtInteraction.__table__
        linked = set()
        for interaction in record.interactions:
            a, b = interaction.key
            if (a, b) in linked:
                continue
            linked.add((a, b))
            if self.context.xref_keys.add(("interaction", a, b)):
                out.append(insert(pairs).values(accession_a=a, accession_b=b).on_conflict_do_nothing())
            pair_id = select(pairs.c.id).where(pairs.c.accession_a == a, pairs.c.accession_b == b).scalar_subquery()
            out.append(
                insert(UniProtInteractionLink.__table__)
                .values(uniprot_id=record.identifier, interaction_id=pair_id,
                        experiments=interaction.experiments)
                .on_conflict_do_nothing()
            )
        for isoform in record.isoforms:
            out.append(
                insert(UniProtIsoform.__table__)
                .values(iso_id=isoform.iso_id, uniprot_id=record.identifier,
                        name=isoform.name, sequence_note=isoform.sequence_note)
                .on_conflict_do_nothing()
            )


GRAMMAR = Grammar(
    name="uniprot",
    fields=FIELDS,
    singleton_policy="fatal",
    emitter_factory=UniProtEmitter,
    name_table=UniProtAttrName.__table__,
    value_table=UniProtAttrValue.__table__,
    tables=UNIPROT_TABLES,
    views=UNIPROT_VIEWS,
)
