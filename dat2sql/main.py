import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .errors import ConfigError, EmissionError, FormatViolation, InputError
from .pipeline import run
from .settings import DEFAULT_LOG_LEVEL, STDIO, ParserConfig
from .setup_logging import setup_logging

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2

# --------------------------------------------------------------------
# Argument parsing
# --------------------------------------------------------------------
def build_parser(grammar: Optional[str] = None) -> argparse.ArgumentParser:
    """
    One parser per console script; with `grammar=None` the grammar is the
    first positional argument (`python -m dat2sql uniprot ...`).
    """
    prog = {"uniprot": "parse-uniprot-dat", "enzyme": "parse-enzyme-dat"}.get(grammar, "dat2sql")
    p = argparse.ArgumentParser(
        prog=prog,
        description="Convert UniProtKB or ENZYME flat files into normalized SQL.",
    )
    if grammar is None:
        p.add_argument("grammar", choices=["uniprot", "enzyme"])
    p.add_argument("-i", "--input", dest="inputs", action="append", metavar="PATH",
                   help="input file, '-' for stdin (repeatable; .gz accepted; default: stdin)")
    p.add_argument("-o", "--output", default=STDIO, metavar="PATH",
                   help="output file, '-' for stdout (default)")
    p.add_argument("-f", "--format", dest="output_format", default="sql",
                   choices=["sql", "json", "pretty"],
                   help="sql statements (default), json dump (one record per line) or pretty dump")
    p.add_argument("-n", "--no-schema", dest="omit_schema", action="store_true",
                   help="omit CREATE TABLE/VIEW statements")
    p.add_argument("-t", "--per-record-transaction", dest="per_record_transactions",
                   action="store_true",
                   help="wrap each record in its own transaction (default: one for the run)")
    if grammar in (None, "enzyme"):
        p.add_argument("-s", "--species", metavar="NAME",
                       help="keep only UniProtKB references whose entry name ends in _NAME")
    p.add_argument("--database", dest="database_url", metavar="URL",
                   help="load rows into this SQLAlchemy database URL instead of writing SQL")
    p.add_argument("-d", "--debug", dest="trace", action="store_true",
                   help="trace every classified line (implies --log-level DEBUG)")
    p.add_argument("-v", "--verbose", action="store_true", help="log a run summary")
    p.add_argument("--log-level", default=DEFAULT_LOG_LEVEL, help="logging level (default: %(default)s)")
    return p


def config_from_args(args: argparse.Namespace, grammar: Optional[str] = None) -> ParserConfig:
    level = args.log_level
    if args.verbose:
        level = "INFO"
    if args.trace:
        level = "DEBUG"
    return ParserConfig(
        grammar=grammar or args.grammar,
        inputs=args.inputs or [STDIO],
        output=args.output,
        output_format=args.output_format,
        database_url=args.database_url,
        omit_schema=args.omit_schema,
        per_record_transactions=args.per_record_transactions,
        species=getattr(args, "species", None),
        log_level=level,
        trace=args.trace,
    )


# --------------------------------------------------------------------
# Entry points
# --------------------------------------------------------------------
def main(argv: Optional[List[str]] = None, grammar: Optional[str] = None) -> int:
    args = build_parser(grammar).parse_args(argv)
    try:
        config = config_from_args(args, grammar)
    except (ConfigError, ValidationError) as e:
        setup_logging()
        log.error("%s", e)
        return EXIT_USAGE
    setup_logging(config.log_level)

    try:
        run(config)
    except FormatViolation as e:
        log.error("input does not follow the %s grammar: %s", config.grammar, e)
        return EXIT_FATAL
    except InputError as e:
        log.error("%s", e)
        return EXIT_FATAL
    except (EmissionError, SQLAlchemyError):
        # batched mode: nothing after the last commit was kept
        log.exception("run aborted")
        return EXIT_FATAL
    return EXIT_OK


def main_uniprot(argv: Optional[List[str]] = None) -> int:
    return main(argv, grammar="uniprot")


def main_enzyme(argv: Optional[List[str]] = None) -> int:
    return main(argv, grammar="enzyme")


def console_uniprot():
    sys.exit(main_uniprot())


def console_enzyme():
    sys.exit(main_enzyme())
