# dat2sql/grammars/base.py
"""
Building blocks shared by the record grammars.

Each tag gets a FieldSpec whose `parse` is a pure function from the
accumulated payload text to a list of items; it raises FieldFormatError when
the text does not fit the tag's grammar.
"""
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Literal, Mapping, NamedTuple, Optional, Sequence, Union

from sqlalchemy import DDL, Table

from ..errors import FieldFormatError
from ..lines import LineClassifier
from ..records import DbXref, Interaction, Isoform, UniProtRef

if TYPE_CHECKING:
    from ..context import ParserContext
    from ..emitter import RelationalEmitter


class Identifier(NamedTuple):
    value: str


class Scalar(NamedTuple):
    name: str
    value: str


class Value(NamedTuple):
    """One element of a list-valued attribute."""
    name: str
    value: str


class Accession(NamedTuple):
    value: str


Item = Union[Identifier, Scalar, Value, Accession, DbXref, Interaction, Isoform, UniProtRef]
FieldParser = Callable[[str], List[Item]]

SingletonPolicy = Literal["fatal", "fold"]


# ---------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------

_EVIDENCE = re.compile(r"\s*\{[^{}]*\}")


def strip_evidence(text: str) -> str:
    """Drop `{ECO:0000269|PubMed:123}` evidence tags."""
    return _EVIDENCE.sub("", text).strip()


def join_words(pending: str, payload: str) -> str:
    """Continuation joiner: one space between lines, none after a trailing hyphen."""
    payload = payload.strip()
    if not pending:
        return payload
    if not payload:
        return pending
    if pending.endswith("-"):
        return pending + payload
    return f"{pending} {payload}"


def join_lines(pending: str, payload: str) -> str:
    """Keep line structure; used by fields whose parser needs it."""
    return f"{pending}\n{payload}" if pending else payload


def ends_with(*suffixes: str) -> Callable[[str], bool]:
    def complete(text: str) -> bool:
        return text.rstrip().endswith(suffixes)
    return complete


def never(text: str) -> bool:
    return False


def always(text: str) -> bool:
    return True


def split_units(text: str, sep: str = ";", tail: str = ".") -> List[str]:
    """`a; b; c.` -> ['a', 'b', 'c']"""
    text = text.strip()
    if tail and text.endswith(tail):
        text = text[: -len(tail)]
    return [u.strip() for u in text.split(sep) if u.strip()]


def ignore(text: str) -> List[Item]:
    return []


# ---------------------------------------------------------------------
# Field and grammar descriptions
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    tag: str
    parse: FieldParser
    complete: Callable[[str], bool] = never
    join: Callable[[str, str], str] = join_words
    # True when a payload opens a new unit even though text is still pending
    starts_unit: Optional[Callable[[str], bool]] = None

    def parse_or_raise(self, text: str) -> List[Item]:
        try:
            return self.parse(text)
        except FieldFormatError:
            raise
        except (ValueError, IndexError) as e:
            raise FieldFormatError(self.tag, text, str(e)) from e


@dataclass(frozen=True)
class Grammar:
    name: str
    fields: Mapping[str, FieldSpec]
    singleton_policy: SingletonPolicy
    emitter_factory: Callable[["ParserContext"], "RelationalEmitter"]
    name_table: Table
    value_table: Table
    tables: Sequence[Table]                # in creation order
    views: Sequence[DDL] = field(default_factory=tuple)
    start_tag: str = "ID"
    tag_width: int = 2
    payload_offset: int = 5

    def classifier(self) -> LineClassifier:
        return LineClassifier(self.fields.keys(), self.tag_width, self.payload_offset)
