from .accumulator import StanzaAccumulator, iter_records
from .context import ParserContext
from .errors import (
    ConfigError,
    Dat2SqlError,
    EmissionError,
    FieldFormatError,
    FormatViolation,
    InputError,
    SingletonConflictError,
)
from .interner import StringInterner
from .pipeline import run
from .records import Record
from .settings import ParserConfig

__all__ = [
    "ConfigError",
    "Dat2SqlError",
    "EmissionError",
    "FieldFormatError",
    "FormatViolation",
    "InputError",
    "ParserConfig",
    "ParserContext",
    "Record",
    "SingletonConflictError",
    "StanzaAccumulator",
    "StringInterner",
    "iter_records",
    "run",
]
