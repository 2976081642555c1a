# dat2sql/settings.py
import os
from typing import List, Literal, Optional

from pydantic import BaseModel, field_validator, model_validator

from .errors import ConfigError

GrammarName  = Literal["uniprot", "enzyme"]
OutputFormat = Literal["sql", "json", "pretty"]

# Stream-redirection sentinel for inputs and output
STDIO = "-"

DEFAULT_LOG_LEVEL = os.getenv("DAT2SQL_LOG_LEVEL", "WARNING")


class ParserConfig(BaseModel):
    """
    Options for one run. Built once by the CLI (or by a caller) and handed to
    every component through the ParserContext.
    """
    grammar: GrammarName
    inputs: List[str] = [STDIO]          # concatenated in order
    output: str = STDIO
    output_format: OutputFormat = "sql"
    database_url: Optional[str] = None   # execute rows instead of writing text
    omit_schema: bool = False
    per_record_transactions: bool = False
    species: Optional[str] = None        # organism mnemonic, e.g. HUMAN
    log_level: str = DEFAULT_LOG_LEVEL
    trace: bool = False

    @field_validator("species")
    @classmethod
    def _upper_species(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None

    @field_validator("inputs")
    @classmethod
    def _default_inputs(cls, v: List[str]) -> List[str]:
        return v or [STDIO]

    @model_validator(mode="after")
    def _check_combinations(self) -> "ParserConfig":
        if self.species and self.grammar != "enzyme":
            raise ConfigError("an organism filter applies to the enzyme grammar only")
        if self.database_url and self.output_format != "sql":
            raise ConfigError(f"format {self.output_format!r} cannot be loaded into a database")
        return self
