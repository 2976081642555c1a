import pytest

from dat2sql.accumulator import iter_records
from dat2sql.errors import MissingIdentifierError
from dat2sql.records import Record

UNIPROT_ROWS = {
    "uniprot_entry": 2,
    "uniprot_accession": 5,
    "uniprot_dbxref": 3,
    "uniprot_interaction": 2,
    "uniprot_interaction_link": 3,
    "uniprot_isoform": 2,
    "uniprot_scalar_attr": 3,
    "uniprot_list_attr": 36,
}


def test_uniprot_script_loads(convert, load_script, count, uniprot_text):
    conn = load_script(convert(uniprot_text))
    for table, expected in UNIPROT_ROWS.items():
        assert count(conn, table) == expected, table


def test_entity_columns(convert, load_script, uniprot_text):
    conn = load_script(convert(uniprot_text))
    row = conn.execute("SELECT id, db, os, ox, sq, sequence FROM uprt_v WHERE id = 'ABL1_HUMAN'").fetchone()
    assert row == (
        "ABL1_HUMAN", "sp", "Homo sapiens (Human)", 9606,
        "30 AA; 3456 MW; B2B4AE1EFF6CE6B0 CRC64;", "MLEICLKLVGCVPKALAAALMLEICLKLVG",
    )


def test_accession_view(convert, load_script, uniprot_text):
    conn = load_script(convert(uniprot_text))
    rows = conn.execute("SELECT accession, uniprotid, db FROM uprt_upacc_v ORDER BY accession").fetchall()
    assert rows[0] == ("P00519", "ABL1_HUMAN", "sp")
    assert ("P46108", "CRK_HUMAN", "sp") in rows
    assert len(rows) == 5


def test_attribute_view(convert, load_script, count, uniprot_text):
    conn = load_script(convert(uniprot_text))
    assert count(conn, "uniprot_attr_v") == 2 + 2 + 5 + 3 + 36
    values = [v for (v,) in conn.execute(
        "SELECT value FROM uniprot_attr_v WHERE uniprotid = 'ABL1_HUMAN' AND attribute = 'DE'")]
    assert "EC 2.7.10.2" in values


def test_lookup_strings_are_stored_once(convert, load_script, count, uniprot_text):
    conn = load_script(convert(uniprot_text))
    # "ABL" is both a gene synonym and a short name of ABL1
    assert count(conn, "uniprot_attr_value", "value = ?", "ABL") == 1
    assert count(conn, "uniprot_attr_name", "name = ?", "KW") == 1
    assert count(conn, "uniprot_list_attr", "value_id = (SELECT id FROM uniprot_attr_value WHERE value = 'ABL')") == 2


def test_interaction_pair_shared_between_records(convert, load_script, count, uniprot_text):
    conn = load_script(convert(uniprot_text))
    assert count(conn, "uniprot_interaction", "accession_a = 'P00519' AND accession_b = 'P46108'") == 1
    linked = conn.execute("""
        SELECT l.uniprot_id FROM uniprot_interaction_link l
          JOIN uniprot_interaction i ON i.id = l.interaction_id
        WHERE i.accession_a = 'P00519' AND i.accession_b = 'P46108'
        ORDER BY l.uniprot_id""").fetchall()
    assert linked == [("ABL1_HUMAN",), ("CRK_HUMAN",)]


def test_record_without_fields_emits_only_the_entity_row(convert, load_script, count):
    conn = load_script(convert("ID   X\n//\n"))
    assert count(conn, "uniprot_entry") == 1
    assert conn.execute("SELECT uniprot_id, db, os FROM uniprot_entry").fetchone() == ("X", None, None)
    for table in ("uniprot_accession", "uniprot_scalar_attr", "uniprot_list_attr", "uniprot_attr_value"):
        assert count(conn, table) == 0, table


def test_repeated_list_values_collapse(convert, load_script, count):
    script = convert("ID   X\nKW   alpha; beta; alpha.\n//\n")
    assert script.count("INSERT INTO uniprot_list_attr") == 2
    conn = load_script(script)
    assert count(conn, "uniprot_list_attr") == 2


def test_duplicate_record_identifier_keeps_first(convert, load_script, count):
    conn = load_script(convert("ID   X\nKW   alpha.\n//\nID   X\nKW   beta.\n//\n"))
    assert count(conn, "uniprot_entry") == 1
    assert count(conn, "uniprot_list_attr") == 1


def test_statement_order(make_context, uniprot_text):
    context = make_context()
    emitter = context.grammar.emitter_factory(context)
    record = next(iter_records(uniprot_text.splitlines(), context.grammar))
    tables = [stmt.table.name for stmt in emitter.emit(record)]
    assert tables[0] == "uniprot_entry"
    positions = {t: max(i for i, n in enumerate(tables) if n == t) for t in set(tables)}
    firsts = {t: tables.index(t) for t in set(tables)}
    assert positions["uniprot_accession"] < firsts["uniprot_interaction"]
    assert positions["uniprot_dbxref"] < firsts["uniprot_interaction"]
    assert firsts["uniprot_interaction"] < firsts["uniprot_interaction_link"]
    assert positions["uniprot_isoform"] < firsts["uniprot_scalar_attr"]
    assert positions["uniprot_scalar_attr"] < firsts["uniprot_list_attr"]


def test_missing_identifier(make_context):
    context = make_context()
    emitter = context.grammar.emitter_factory(context)
    with pytest.raises(MissingIdentifierError):
        emitter.emit(Record(grammar="uniprot"))


# -----------------------------
# ENZYME
# -----------------------------
def test_enzyme_script_loads(convert, load_script, count, enzyme_text):
    conn = load_script(convert(enzyme_text, grammar="enzyme"))
    assert count(conn, "enzyme_entry") == 3
    assert count(conn, "enzyme_uniprot") == 5
    assert count(conn, "enzyme_uniprot_link") == 6
    assert count(conn, "enzyme_scalar_attr") == 0
    assert count(conn, "enzyme_list_attr", "ec_number = '1.1.1.1'") == 8
    statuses = dict(conn.execute("SELECT ec_number, status FROM enzyme_entry"))
    assert statuses == {"1.1.1.1": "active", "1.1.1.2": "active", "1.1.1.5": "transferred"}


def test_enzyme_shared_uniprot_reference(convert, load_script, enzyme_text):
    conn = load_script(convert(enzyme_text, grammar="enzyme"))
    rows = conn.execute(
        "SELECT ec_number FROM enzyme_uniprot_v WHERE accession = 'P28469' ORDER BY ec_number").fetchall()
    assert rows == [("1.1.1.1",), ("1.1.1.2",)]


def test_species_filter(convert, load_script, count, enzyme_text):
    conn = load_script(convert(enzyme_text, grammar="enzyme", species="human"))
    assert [r[0] for r in conn.execute("SELECT ec_number FROM enzyme_entry")] == ["1.1.1.1"]
    assert sorted(r[0] for r in conn.execute("SELECT entry_name FROM enzyme_uniprot")) == [
        "ADH1A_HUMAN", "ADH1B_HUMAN",
    ]
    assert count(conn, "enzyme_uniprot_link") == 2
    # skipped records leave nothing behind
    assert count(conn, "enzyme_list_attr", "ec_number <> '1.1.1.1'") == 0


def test_species_filter_without_match_emits_nothing(convert):
    script = convert("ID   1.1.1.2\nDE   Name.\nDR   Q6AZW2, A1A1A_DANRE;\n//\n",
                     grammar="enzyme", species="HUMAN", omit_schema=True)
    assert "INSERT" not in script


SHARED_CONTIG = "\n".join([
    "ID   X_HUMAN",
    "DR   EMBL; AL359076; CAI14327.1; -; Genomic_DNA.",
    "DR   EMBL; AL359076; CAI14328.1; -; Genomic_DNA.",
    "DR   PDB; 1ABL.",
    "//",
])


def test_cross_references_sharing_an_identifier_keep_their_details(convert, load_script, count):
    conn = load_script(convert(SHARED_CONTIG))
    assert count(conn, "uniprot_dbxref") == 3
    details = {v for (v,) in conn.execute("""
        SELECT v.value FROM uniprot_dbxref x
          JOIN uniprot_attr_value v ON v.id = x.detail_id""")}
    assert details == {"CAI14327.1; -; Genomic_DNA", "CAI14328.1; -; Genomic_DNA"}


def test_cross_references_are_not_duplicated_on_reload(convert, load_script, count):
    script = convert(SHARED_CONTIG)
    conn = load_script(script)
    load_script(script, conn)
    assert count(conn, "uniprot_dbxref") == 3
    assert count(conn, "uniprot_dbxref", "detail_id IS NULL") == 1
