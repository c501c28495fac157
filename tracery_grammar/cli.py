from __future__ import annotations

import json
import logging
from typing import Any, NoReturn, Optional

import typer

from tracery_grammar.core import config
from tracery_grammar.core.errors import (
    ExpansionDepthError,
    GrammarConfigError,
    GrammarError,
    GrammarLoadError,
    GrammarValidationError,
)
from tracery_grammar.core.expand.grammar import Grammar, iter_flatten
from tracery_grammar.core.io.load_grammar import load_grammar
from tracery_grammar.core.lint.lint_grammar import lint_grammar
from tracery_grammar.core.modifiers.english import add_english
from tracery_grammar.core.rules import RuleTable
from tracery_grammar.core.select.selectors import build_selector
from tracery_grammar.core.validate.validate_grammar import summarize_grammar, validate_grammar

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log expansion details to stderr"),
) -> None:
    """Tracery grammar CLI."""
    # Warnings reach stderr without any setup; -v adds the debug trace.
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a grammar file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate the shape of a grammar file."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    raw = _load_or_exit(path, format, "validate")
    table, errors = validate_grammar(raw)
    if errors or table is None:
        if format == "json":
            _emit_json("validate", False, errors, exit_code=2)
        _print_errors(errors)
        raise typer.Exit(code=2)

    if format == "text":
        typer.echo(summarize_grammar(table))
        return

    _emit_json(
        "validate",
        True,
        [],
        exit_code=0,
        summary={
            "symbol_count": len(table),
            "candidate_count": sum(len(c) for c in table.values()),
        },
    )


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a grammar file (.yaml/.yml/.json)"),
    origin: str = typer.Option("origin", "--origin", help="Start symbol for reachability checks"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a grammar (unknown symbols/modifiers, unreachable and non-terminating rules)."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")

    raw = _load_or_exit(path, format, "lint")
    table, validation_errors = validate_grammar(raw)
    errors: list[GrammarError] = list(validation_errors)
    if table is not None:
        # lint never expands, so the recursion limit from the environment is irrelevant
        modifiers = add_english(Grammar(max_depth=config.DEFAULT_MAX_DEPTH)).modifiers
        errors += lint_grammar(table, modifiers=modifiers, origin=origin, file=raw.get("__file__"))

    if format == "json":
        _emit_json("lint", not errors, errors, exit_code=2 if errors else 0)

    if errors:
        _print_errors(errors)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("symbols")
def symbols(
    path: str = typer.Argument(..., help="Path to a grammar file (.yaml/.yml/.json)"),
) -> None:
    """List the symbols of a grammar and their candidates."""
    table = _table_or_exit(path, "text", "symbols")
    typer.echo("Symbols:")
    for name in sorted(table.keys(), key=str.lower):
        typer.echo(f"- {name}: {' | '.join(table[name])}")


@app.command("flatten")
def flatten(
    path: str = typer.Argument(..., help="Path to a grammar file (.yaml/.yml/.json)"),
    rule: Optional[str] = typer.Option(None, "--rule", help="Rule string to expand (default: #<origin>#)"),
    origin: str = typer.Option("origin", "--origin", help="Start symbol when --rule is not given"),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of expansions"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for random selectors"),
    selector: Optional[str] = typer.Option(
        None,
        "--selector",
        help="Candidate selection: random|first|sequential|deck (default: $TRACERY_SELECTOR or random)",
    ),
    persist_bindings: bool = typer.Option(
        False,
        "--persist-bindings/--call-bindings",
        help="Keep variable bindings as rules across expansions",
    ),
    max_depth: Optional[int] = typer.Option(
        None, "--max-depth", min=1, help="Recursion limit (default: $TRACERY_MAX_DEPTH or 64)"
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail instead of truncating at the recursion limit"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Expand a rule against a grammar file."""
    _check_format(format, "E_FLATTEN_UNKNOWN_FORMAT")

    table = _table_or_exit(path, format, "flatten")
    file = path

    if rule is None:
        if origin not in table:
            err = GrammarValidationError(
                code="E_FLATTEN_UNKNOWN_ORIGIN",
                message=f"--origin references unknown symbol: {origin}",
                file=file,
                path="origin",
            )
            _fail([err], format, "flatten")
        rule = f"#{origin}#"

    try:
        sel = build_selector(selector or config.default_selector(), seed=seed)
        grammar = Grammar(table, persist_bindings=persist_bindings, max_depth=max_depth, strict=strict)
    except GrammarConfigError as e:
        _fail([e], format, "flatten")
    add_english(grammar)

    try:
        results = list(iter_flatten(grammar, rule, sel, count=count))
    except ExpansionDepthError as e:
        _fail([e], format, "flatten")

    if format == "json":
        payload = {
            "tool": "tracery",
            "command": "flatten",
            "rule": rule,
            "ok": True,
            "results": results,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        return

    for text in results:
        typer.echo(text)


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        err = GrammarValidationError(
            code=code,
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _load_or_exit(path: str, format: str, command: str) -> dict[str, Any]:
    try:
        return load_grammar(path)
    except GrammarLoadError as e:
        if format == "json":
            _emit_json(command, False, [e], exit_code=1)
        _print_errors([e])
        raise typer.Exit(code=1)


def _table_or_exit(path: str, format: str, command: str) -> RuleTable:
    raw = _load_or_exit(path, format, command)
    table, errors = validate_grammar(raw)
    if errors or table is None:
        _fail(errors, format, command)
    return table


def _fail(errors: list[Any], format: str, command: str) -> NoReturn:
    if format == "json":
        _emit_json(command, False, errors, exit_code=2)
    _print_errors(errors)
    raise typer.Exit(code=2)


def _to_item(e: GrammarError) -> dict:
    code = getattr(e, "code", "E_UNKNOWN")
    source = "load" if isinstance(e, GrammarLoadError) else "lint" if code.startswith("L_") else "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _emit_json(
    command: str,
    ok: bool,
    errors: list[Any],
    *,
    exit_code: int,
    summary: dict | None = None,
) -> None:
    payload = {
        "tool": "tracery",
        "command": command,
        "ok": ok,
        "error_count": len(errors),
        "errors": [_to_item(e) for e in errors],
        "summary": summary,
    }
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    raise typer.Exit(code=exit_code)


def _print_errors(errors: list[Any]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="tracery")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
