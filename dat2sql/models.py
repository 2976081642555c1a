from sqlalchemy import DDL, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from .db import Base

# -----------------------------
# UniProtKB tables
# -----------------------------
class UniProtAttrName(Base):
    __tablename__ = "uniprot_attr_name"
    # closed vocabulary of attribute names (GN, DE, KW, FUNCTION, ...)
    id   = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False)


class UniProtAttrValue(Base):
    __tablename__ = "uniprot_attr_value"
    # interned attribute values and accession texts
    id    = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Text, unique=True, nullable=False)


class UniProtEntry(Base):
    __tablename__ = "uniprot_entry"
    uniprot_id = Column(String, primary_key=True)           # entry name, e.g. ABL1_HUMAN
    db         = Column(String)                              # sp (reviewed) / tr (unreviewed)
    os         = Column(Text)                                # organism species
    ox         = Column(Integer)                             # NCBI taxon id
    stats      = Column(Text)                                # SQ line summary
    sequence   = Column(Text)

    def __repr__(self):
        return f"<UniProtEntry(uniprot_id={self.uniprot_id}, db={self.db}, ox={self.ox})>"


class UniProtAccession(Base):
    __tablename__ = "uniprot_accession"
    __table_args__ = (UniqueConstraint("uniprot_id", "value_id"),)
    id         = Column(Integer, primary_key=True, autoincrement=True)
    uniprot_id = Column(String, ForeignKey("uniprot_entry.uniprot_id"), nullable=False, index=True)
    value_id   = Column(Integer, ForeignKey("uniprot_attr_value.id"), nullable=False, index=True)


class UniProtDbXref(Base):
    __tablename__ = "uniprot_dbxref"
    id            = Column(Integer, primary_key=True, autoincrement=True)
    uniprot_id    = Column(String, ForeignKey("uniprot_entry.uniprot_id"), nullable=False, index=True)
    database_id   = Column(Integer, ForeignKey("uniprot_attr_name.id"), nullable=False)
    identifier_id = Column(Integer, ForeignKey("uniprot_attr_value.id"), nullable=False)
    detail_id     = Column(Integer, ForeignKey("uniprot_attr_value.id"))


# NULL details never compare equal in a UNIQUE constraint, so key on coalesce(detail_id, 0)
Index(
    "ux_uniprot_dbxref_entry",
    UniProtDbXref.uniprot_id,
    UniProtDbXref.database_id,
    UniProtDbXref.identifier_id,
    func.coalesce(UniProtDbXref.detail_id, 0),
    unique=True,
)


class UniProtInteraction(Base):
    __tablename__ = "uniprot_interaction"
    __table_args__ = (UniqueConstraint("accession_a", "accession_b"),)
    # shared by every entry that reports the pair; accession_a <= accession_b
    id          = Column(Integer, primary_key=True, autoincrement=True)
    accession_a = Column(String, nullable=False)
    accession_b = Column(String, nullable=False)


class UniProtInteractionLink(Base):
    __tablename__ = "uniprot_interaction_link"
    __table_args__ = (UniqueConstraint("uniprot_id", "interaction_id"),)
    id             = Column(Integer, primary_key=True, autoincrement=True)
    uniprot_id     = Column(String, ForeignKey("uniprot_entry.uniprot_id"), nullable=False, index=True)
    interaction_id = Column(Integer, ForeignKey("uniprot_interaction.id"), nullable=False)
    experiments    = Column(Integer)                         # NbExp


class UniProtIsoform(Base):
    __tablename__ = "uniprot_isoform"
    iso_id        = Column(String, primary_key=True)         # e.g. P00519-2
    uniprot_id    = Column(String, ForeignKey("uniprot_entry.uniprot_id"), nullable=False, index=True)
    name          = Column(String)
    sequence_note = Column(Text)                              # Displayed / VSP_... list


class UniProtScalarAttr(Base):
    __tablename__ = "uniprot_scalar_attr"
    __table_args__ = (UniqueConstraint("uniprot_id", "name_id"),)
    id         = Column(Integer, primary_key=True, autoincrement=True)
    uniprot_id = Column(String, ForeignKey("uniprot_entry.uniprot_id"), nullable=False, index=True)
    name_id    = Column(Integer, ForeignKey("uniprot_attr_name.id"), nullable=False)
    value_id   = Column(Integer, ForeignKey("uniprot_attr_value.id"), nullable=False)


class UniProtListAttr(Base):
    __tablename__ = "uniprot_list_attr"
    __table_args__ = (UniqueConstraint("uniprot_id", "name_id", "value_id"),)
    id         = Column(Integer, primary_key=True, autoincrement=True)
    uniprot_id = Column(String, ForeignKey("uniprot_entry.uniprot_id"), nullable=False, index=True)
    name_id    = Column(Integer, ForeignKey("uniprot_attr_name.id"), nullable=False)
    value_id   = Column(Integer, ForeignKey("uniprot_attr_value.id"), nullable=False)


UNIPROT_TABLES = [
    UniProtAttrName.__table__,
    UniProtAttrValue.__table__,
    UniProtEntry.__table__,
    UniProtAccession.__table__,
    UniProtDbXref.__table__,
    UniProtInteraction.__table__,
    UniProtInteractionLink.__table__,
    UniProtIsoform.__table__,
    UniProtScalarAttr.__table__,
    UniProtListAttr.__table__,
]

# Views kept under the names downstream SQL already joins against
UNIPROT_VIEWS = [
    DDL("""
CREATE VIEW IF NOT EXISTS uprt_v AS
  SELECT uniprot_id AS id, db, os, ox, stats AS sq, sequence
  FROM uniprot_entry"""),
    DDL("""
CREATE VIEW IF NOT EXISTS uprt_upacc_v AS
  SELECT v.value AS accession, e.uniprot_id AS uniprotid, e.db
  FROM uniprot_accession a
    JOIN uniprot_attr_value v ON v.id = a.value_id
    JOIN uniprot_entry e ON e.uniprot_id = a.uniprot_id"""),
    DDL("""
CREATE VIEW IF NOT EXISTS uniprot_attr_v AS
  SELECT uniprot_id AS uniprotid, 'ID' AS attribute, uniprot_id AS value FROM uniprot_entry
  UNION ALL
  SELECT uniprot_id, 'DB', db FROM uniprot_entry WHERE db IS NOT NULL
  UNION ALL
  SELECT a.uniprot_id, 'AC', v.value
  FROM uniprot_accession a JOIN uniprot_attr_value v ON v.id = a.value_id
  UNION ALL
  SELECT s.uniprot_id, n.name, v.value
  FROM uniprot_scalar_attr s
    JOIN uniprot_attr_name n ON n.id = s.name_id
    JOIN uniprot_attr_value v ON v.id = s.value_id
  UNION ALL
  SELECT l.uniprot_id, n.name, v.value
  FROM uniprot_list_attr l
    JOIN uniprot_attr_name n ON n.id = l.name_id
    JOIN uniprot_attr_value v ON v.id = l.value_id"""),
]


# -----------------------------
# ENZYME tables
# -----------------------------
class EnzymeAttrName(Base):
    __tablename__ = "enzyme_attr_name"
    id   = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, unique=True, nullable=False)


class EnzymeAttrValue(Base):
    __tablename__ = "enzyme_attr_value"
    id    = Column(Integer, primary_key=True, autoincrement=True)
    value = Column(Text, unique=True, nullable=False)


class EnzymeEntry(Base):
    __tablename__ = "enzyme_entry"
    ec_number   = Column(String, primary_key=True)          # e.g. 1.1.1.1
    description = Column(Text)                               # first DE value
    status      = Column(String, nullable=False)             # active/transferred/deleted

    def __repr__(self):
        return f"<EnzymeEntry(ec_number={self.ec_number}, status={self.status})>"


class EnzymeUniProt(Base):
    __tablename__ = "enzyme_uniprot"
    __table_args__ = (UniqueConstraint("accession", "entry_name"),)
    # one row per UniProtKB entry, shared by all EC numbers citing it
    id         = Column(Integer, primary_key=True, autoincrement=True)
    accession  = Column(String, nullable=False, index=True)
    entry_name = Column(String, nullable=False)


class EnzymeUniProtLink(Base):
    __tablename__ = "enzyme_uniprot_link"
    __table_args__ = (UniqueConstraint("ec_number", "uniprot_ref_id"),)
    id             = Column(Integer, primary_key=True, autoincrement=True)
    ec_number      = Column(String, ForeignKey("enzyme_entry.ec_number"), nullable=False, index=True)
    uniprot_ref_id = Column(Integer, ForeignKey("enzyme_uniprot.id"), nullable=False)


class EnzymeScalarAttr(Base):
    __tablename__ = "enzyme_scalar_attr"
    __table_args__ = (UniqueConstraint("ec_number", "name_id"),)
    id        = Column(Integer, primary_key=True, autoincrement=True)
    ec_number = Column(String, ForeignKey("enzyme_entry.ec_number"), nullable=False, index=True)
    name_id   = Column(Integer, ForeignKey("enzyme_attr_name.id"), nullable=False)
    value_id  = Column(Integer, ForeignKey("enzyme_attr_value.id"), nullable=False)


class EnzymeListAttr(Base):
    __tablename__ = "enzyme_list_attr"
    __table_args__ = (UniqueConstraint("ec_number", "name_id", "value_id"),)
    id        = Column(Integer, primary_key=True, autoincrement=True)
    ec_number = Column(String, ForeignKey("enzyme_entry.ec_number"), nullable=False, index=True)
    name_id   = Column(Integer, ForeignKey("enzyme_attr_name.id"), nullable=False)
    value_id  = Column(Integer, ForeignKey("enzyme_attr_value.id"), nullable=False)


ENZYME_TABLES = [
    EnzymeAttrName.__table__,
    EnzymeAttrValue.__table__,
    EnzymeEntry.__table__,
    EnzymeUniProt.__table__,
    EnzymeUniProtLink.__table__,
    EnzymeScalarAttr.__table__,
    EnzymeListAttr.__table__,
]

ENZYME_VIEWS = [
    DDL("""
CREATE VIEW IF NOT EXISTS enzyme_uniprot_v AS
  SELECT l.ec_number, u.accession, u.entry_name
  FROM enzyme_uniprot_link l
    JOIN enzyme_uniprot u ON u.id = l.uniprot_ref_id"""),
]
