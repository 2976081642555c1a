import io

from sqlalchemy import select

from dat2sql.interner import SeenKeys, StringInterner
from dat2sql.models import UniProtAttrValue
from dat2sql.pipeline import run
from dat2sql.settings import ParserConfig


def test_intern_returns_the_same_handle():
    interner = StringInterner(UniProtAttrValue.__table__, "value")
    first = interner.intern("Kinase")
    assert interner.intern("Kinase") is first
    assert interner.intern("ATP-binding") is not first
    assert len(interner) == 2


def test_only_first_occurrence_needs_a_row():
    interner = StringInterner(UniProtAttrValue.__table__, "value")
    assert interner.intern_new("Kinase")[1] is True
    assert interner.intern_new("Kinase")[1] is False


def test_rollback_forgets_uncommitted_texts():
    interner = StringInterner(UniProtAttrValue.__table__, "value")
    kept = interner.intern("kept")
    interner.commit()
    interner.intern("dropped")
    interner.rollback()
    assert len(interner) == 1
    ref, new = interner.intern_new("kept")
    assert ref is kept and new is False
    assert interner.intern_new("dropped")[1] is True


def test_handle_resolves_to_the_stored_id(uniprot_schema):
    interner = StringInterner(UniProtAttrValue.__table__, "value")
    table = UniProtAttrValue.__table__
    ref, new = interner.intern_new("Kinase")
    assert new
    with uniprot_schema.begin() as conn:
        conn.execute(interner.insert_row("ATP-binding"))
        conn.execute(interner.insert_row("Kinase"))
        conn.execute(interner.insert_row("Kinase"))
        ident = conn.execute(select(ref)).scalar_one()
        rows = conn.execute(select(table.c.id, table.c.value).order_by(table.c.id)).all()
    assert rows == [(1, "ATP-binding"), (2, "Kinase")]
    assert ident == 2


def test_seen_keys_commit_and_rollback():
    seen = SeenKeys()
    assert seen.add(("P1", "P2")) is True
    assert seen.add(("P1", "P2")) is False
    seen.commit()
    assert seen.add(("P3", "P4")) is True
    seen.rollback()
    assert len(seen) == 1
    assert seen.add(("P1", "P2")) is False
    assert seen.add(("P3", "P4")) is True


def test_run_summary_reports_cache_sizes():
    text = "ID   X\nKW   alpha; beta; alpha.\n//\nID   X\nKW   gamma.\n//\n"
    context = run(ParserConfig(grammar="uniprot"), lines=text.splitlines(), out=io.StringIO())
    summary = context.summary()
    assert summary.startswith(context.stats.summary())
    assert summary.endswith("names=1 values=2 records=1 xrefs=0")
