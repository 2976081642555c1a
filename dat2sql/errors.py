"""Exception taxonomy shared by the reader, accumulator, emitter and CLI."""


class Dat2SqlError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(Dat2SqlError):
    """Invalid combination of options."""


class InputError(Dat2SqlError):
    """The input stream cannot be read as line-oriented text."""


class FieldFormatError(Dat2SqlError):
    """A payload for a known tag could not be parsed. Recoverable: the field is dropped."""

    def __init__(self, tag: str, payload: str, reason: str = "unparsable payload"):
        super().__init__(f"{tag}: {reason}: {payload!r}")
        self.tag = tag
        self.payload = payload
        self.reason = reason


class FormatViolation(Dat2SqlError):
    """The input does not follow the grammar at all. Fatal for the whole run."""


class SingletonConflictError(FormatViolation):
    def __init__(self, tag: str, record_id: str | None, existing: str, conflicting: str):
        super().__init__(
            f"field {tag} must occur once per record but record "
            f"{record_id or '<none found>'} has {existing!r} and {conflicting!r}"
        )
        self.tag = tag
        self.record_id = record_id
        self.existing = existing
        self.conflicting = conflicting


class EmissionError(Dat2SqlError):
    """Building or writing the rows of one record failed."""


class MissingIdentifierError(EmissionError):
    def __init__(self):
        super().__init__("record has no primary identifier")
