import pytest

from dat2sql.accumulator import State, StanzaAccumulator, iter_records
from dat2sql.errors import SingletonConflictError
from dat2sql.grammars import ENZYME, UNIPROT
from dat2sql.records import DbXref, Interaction, Isoform, UniProtRef


def records(text, grammar=UNIPROT):
    return list(iter_records(text.splitlines(), grammar))


# -----------------------------
# UniProtKB
# -----------------------------
@pytest.fixture
def abl1(uniprot_text):
    return records(uniprot_text)[0]


def test_uniprot_sample_yields_two_records(uniprot_text):
    assert [r.identifier for r in records(uniprot_text)] == ["ABL1_HUMAN", "CRK_HUMAN"]


def test_id_line(abl1):
    assert abl1.scalars["DB"] == "sp"
    assert abl1.scalars["LENGTH"] == "1130"


def test_accessions_span_lines(abl1):
    assert abl1.accessions == ["P00519", "Q13869", "Q13870", "Q16133"]


def test_organism_columns(abl1):
    assert abl1.scalars["OS"] == "Homo sapiens (Human)"
    assert abl1.scalars["OX"] == "9606"
    assert len(abl1.lists["OC"]) == 14
    assert abl1.lists["OC"][-1] == "Homo"


def test_description_names_and_ec(abl1):
    assert abl1.lists["DE"] == [
        "Tyrosine-protein kinase ABL1",
        "EC 2.7.10.2",
        "Abelson murine leukemia viral oncogene homolog 1",
        "ABL",
    ]


def test_gene_names(abl1):
    assert abl1.lists["GN"] == ["ABL1", "ABL", "JTK7"]


def test_reference_lines_only_keep_pubmed(abl1):
    assert abl1.lists["PUBMED"] == ["3021337"]
    assert "RA" not in abl1.lists


def test_comment_continuation_joins_hyphenated_words(abl1):
    (function,) = abl1.lists["FUNCTION"]
    assert "cyto-skeleton remodeling." in function
    assert function.startswith("Non-receptor tyrosine-protein kinase that plays a role in many key")


def test_copyright_block_is_not_a_topic(abl1):
    assert not any("Copyrighted" in v for values in abl1.lists.values() for v in values)


def test_interactions(abl1):
    assert abl1.interactions == [
        Interaction(accession_a="P00519", accession_b="P46108", experiments=3),
        Interaction(accession_a="P00519", accession_b="P00519", experiments=2),
    ]


def test_isoforms(abl1):
    assert abl1.lists["ALTERNATIVE PRODUCTS"] == ["Alternative splicing"]
    assert abl1.isoforms == [
        Isoform(iso_id="P00519-1", name="IA", sequence_note="Displayed"),
        Isoform(iso_id="P00519-2", name="IB", sequence_note="VSP_004957"),
    ]


def test_database_cross_references(abl1):
    assert abl1.db_xrefs == [
        DbXref(database="EMBL", identifier="M14752", detail="AAA51561.1; -; mRNA"),
        DbXref(database="RefSeq", identifier="NP_005148.2", detail="NM_005157.5 [P00519-1]"),
        DbXref(database="GO", identifier="GO:0005737", detail="C:cytoplasm; IDA:UniProtKB"),
    ]


def test_keywords_across_lines(abl1):
    assert abl1.lists["KW"] == ["3D-structure", "ATP-binding", "Kinase", "Tyrosine-protein kinase"]


def test_features_with_qualifier_lines(abl1):
    assert abl1.lists["MOD_RES"] == ["70 Phosphotyrosine; by autocatalysis", "412 Phosphotyrosine"]


def test_sequence(abl1):
    assert abl1.scalars["SQ"] == "30 AA; 3456 MW; B2B4AE1EFF6CE6B0 CRC64;"
    assert abl1.scalars["SEQUENCE"] == "MLEICLKLVGCVPKALAAALMLEICLKLVG"
    assert abl1.scalars["PE"] == "1: Evidence at protein level"


def test_old_interaction_layout_and_self():
    text = "\n".join([
        "ID   X_HUMAN  Reviewed;  10 AA.",
        "AC   P11111;",
        "CC   -!- INTERACTION:",
        "CC       Self; NbExp=4; IntAct=EBI-1, EBI-1;",
        "CC       P22222:GENE; NbExp=1; IntAct=EBI-1, EBI-2;",
        "//",
    ])
    (record,) = records(text)
    assert [(i.accession_a, i.accession_b, i.experiments) for i in record.interactions] == [
        ("P11111", "P11111", 4),
        ("P11111", "P22222", 1),
    ]


def test_de_flags_and_sub_sections():
    text = "\n".join([
        "ID   X_HUMAN  Unreviewed;  10 AA.",
        "DE   SubName: Full=Some protein {ECO:0000313|EMBL:AAA1.1};",
        "DE   Contains:",
        "DE     RecName: Full=Chain A;",
        "DE   Flags: Fragment;",
        "//",
    ])
    (record,) = records(text)
    assert record.scalars["DB"] == "tr"
    assert record.lists["DE"] == ["Some protein", "Chain A"]
    assert record.lists["FLAGS"] == ["Fragment"]


def test_unrecognized_lines_do_not_change_the_record(uniprot_text):
    noisy = []
    for line in uniprot_text.splitlines():
        noisy.append(line)
        if line != "//":
            noisy.extend(["XX   editorial note", "## decoration", ""])
    assert records("\n".join(noisy)) == records(uniprot_text)


def test_unparsable_payload_drops_only_that_field():
    text = "ID   X_HUMAN  Reviewed;  10 AA.\nOX   no taxon here;\nKW   Kinase.\n//"
    acc = StanzaAccumulator(UNIPROT)
    produced = [r for r in map(acc.feed, text.splitlines()) if r is not None]
    (record,) = produced
    assert "OX" not in record.scalars
    assert record.lists["KW"] == ["Kinase"]
    assert acc.dropped_lines == 1


def test_second_different_id_is_fatal():
    text = "ID   A_HUMAN  Reviewed;  10 AA.\nID   B_HUMAN  Reviewed;  10 AA.\n//\nID   C_HUMAN\n//"
    with pytest.raises(SingletonConflictError) as e:
        records(text)
    assert e.value.tag == "ID"
    assert e.value.existing == "A_HUMAN"
    assert e.value.conflicting == "B_HUMAN"


def test_conflicting_organism_is_fatal():
    text = "ID   A_HUMAN\nOX   NCBI_TaxID=9606;\nOX   NCBI_TaxID=10090;\n//"
    with pytest.raises(SingletonConflictError):
        records(text)


def test_partial_record_at_end_of_input_is_discarded():
    text = "ID   A_HUMAN\n//\nID   B_HUMAN\nAC   P1;"
    assert [r.identifier for r in records(text)] == ["A_HUMAN"]


def test_state_returns_to_awaiting_start():
    acc = StanzaAccumulator(UNIPROT)
    acc.feed("ID   A_HUMAN")
    assert acc.state is State.ACCUMULATING
    assert acc.feed("//").identifier == "A_HUMAN"
    assert acc.state is State.AWAITING_START


def test_concatenated_sources_form_one_stream(uniprot_text):
    lines = uniprot_text.splitlines() + uniprot_text.splitlines()
    assert len(list(iter_records(lines, UNIPROT))) == 4


# -----------------------------
# ENZYME
# -----------------------------
@pytest.fixture
def enzyme_records(enzyme_text):
    return records(enzyme_text, ENZYME)


def test_enzyme_header_is_skipped(enzyme_records):
    assert [r.identifier for r in enzyme_records] == ["1.1.1.1", "1.1.1.2", "1.1.1.5"]


def test_enzyme_fields(enzyme_records):
    adh = enzyme_records[0]
    assert adh.scalars["DE"] == "Alcohol dehydrogenase"
    assert adh.lists["AN"] == ["Aldehyde reductase"]
    assert len(adh.lists["CA"]) == 2
    assert adh.lists["CF"] == ["Zn(2+) or Fe cation"]
    assert adh.lists["PR"] == ["PDOC00058", "PDOC00059"]
    assert len(adh.lists["CC"]) == 2
    assert adh.lists["CC"][0].endswith("much more poorly than ethanol.")


def test_enzyme_uniprot_references(enzyme_records):
    refs = enzyme_records[0].uniprot_refs
    assert refs[0] == UniProtRef(accession="P07327", entry_name="ADH1A_HUMAN")
    assert [r.species for r in refs] == ["HUMAN", "MACMU", "PONAB", "HUMAN"]


def test_multi_line_description(enzyme_records):
    assert enzyme_records[2].scalars["DE"] == "Transferred entry: 1.1.1.303 and 1.1.1.304"


def test_enzyme_repeated_description_folds_into_list():
    text = "ID   9.9.9.9\nDE   First name.\nDE   Second name.\n//"
    (record,) = records(text, ENZYME)
    assert "DE" not in record.scalars
    assert record.lists["DE"] == ["First name", "Second name"]
    assert record.first("DE") == "First name"


def test_enzyme_repeated_id_folds_into_list():
    text = "ID   9.9.9.9\nID   9.9.9.10\n//"
    (record,) = records(text, ENZYME)
    assert record.identifier == "9.9.9.9"
    assert record.lists["ID"] == ["9.9.9.9", "9.9.9.10"]
