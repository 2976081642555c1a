from .base import FieldSpec, Grammar
from .enzyme import GRAMMAR as ENZYME
from .uniprot import GRAMMAR as UNIPROT

GRAMMARS = {g.name: g for g in (UNIPROT, ENZYME)}


def get_grammar(name: str) -> Grammar:
    try:
        return GRAMMARS[name]
    except KeyError:
        raise KeyError(f"unknown grammar {name!r}; expected one of {sorted(GRAMMARS)}") from None


__all__ = [
    "FieldSpec",
    "Grammar",
    "GRAMMARS",
    "ENZYME",
    "UNIPROT",
    "get_grammar",
]
