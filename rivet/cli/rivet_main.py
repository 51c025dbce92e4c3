#!/usr/bin/env python3
import argparse
import sys

import rivet
from rivet.exceptions import RivetException
from rivet.ir import analyze_function
from rivet.ir.check_ir import check_ir_ctx
from rivet.ir.parser import parse_ir
from rivet.ir.printer import annotate_function, format_riv_report
from rivet.settings import Settings
from rivet.warnings import RivetWarning, warnings_filter

"""
Standalone entry point into the reachable values analysis. Parses textual IR
and prints, for every basic block of every function, the integer values
reachable from it.
"""


def _parse_cli_args():
    return _parse_args(sys.argv[1:])


def _parse_args(argv: list[str]):
    parser = argparse.ArgumentParser(
        description="Reachable integer values analysis", formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("input_file", help="IR sourcefile", nargs="?")
    parser.add_argument("--version", action="version", version=rivet.__version__)
    parser.add_argument("--stdin", action="store_true", help="whether to pull IR input from stdin")
    parser.add_argument(
        "--no-check",
        action="store_true",
        help="skip the semantic checks on the input IR",
        dest="no_check",
    )
    parser.add_argument(
        "--annotate",
        action="store_true",
        help="print the IR annotated with the reachable values of each block\n"
        "instead of a table",
    )
    parser.add_argument(
        "-W",
        help="Control warnings: `error` turns warnings into errors, `none` silences them",
        choices=["error", "none"],
        dest="warnings_control",
    )
    parser.add_argument(
        "--traceback", help="Show python traceback on error", action="store_true"
    )

    args = parser.parse_args(argv)

    settings = Settings.from_env(
        check=not args.no_check, annotate=args.annotate, warnings_control=args.warnings_control
    )

    if args.stdin:
        if not sys.stdin.isatty():
            ir_source = sys.stdin.read()
        else:
            # No input provided
            print("Error: --stdin flag used but no input provided")
            sys.exit(1)
    else:
        if args.input_file is None:
            print("Error: No input file provided, either use --stdin or provide a path")
            sys.exit(1)
        with open(args.input_file, "r") as f:
            ir_source = f.read()

    try:
        output = _analyze(ir_source, settings)
    except (RivetException, RivetWarning, ExceptionGroup) as e:
        if args.traceback:
            raise
        print(f"Error: {_format_error(e)}")
        sys.exit(1)

    print(output, end="")


def _analyze(ir_source: str, settings: Settings) -> str:
    with warnings_filter(settings.warnings_control):
        ctx = parse_ir(ir_source)

        if settings.check:
            check_ir_ctx(ctx)

        out = []
        for fn in ctx.get_functions():
            result = analyze_function(fn)
            if settings.annotate:
                out.append(annotate_function(fn, result) + "\n")
            else:
                out.append(format_riv_report(fn, result))

    return "\n".join(out)


def _format_error(e: Exception) -> str:
    if isinstance(e, ExceptionGroup):
        return "\n\n".join([e.message] + [str(sub) for sub in e.exceptions])
    return str(e)


if __name__ == "__main__":
    _parse_args(sys.argv[1:])
