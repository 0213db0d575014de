from __future__ import annotations

import json
from pathlib import Path

import typer

app = typer.Typer(name="pollcheck", help="Inspect and export assertion run results")
schema_app = typer.Typer(name="schema", help="Generate schema tooling for settings files")
app.add_typer(schema_app, name="schema")


def _load_results(results: str) -> dict:
    results_path = Path(results)
    if not results_path.exists():
        typer.echo(f"Error: results file not found: {results}", err=True)
        raise typer.Exit(1)
    try:
        data = json.loads(results_path.read_text())
    except json.JSONDecodeError as e:
        typer.echo(f"Error: {results} is not valid JSON: {e}", err=True)
        raise typer.Exit(1)
    if not isinstance(data, dict) or "modules" not in data:
        typer.echo(f"Error: {results} is not an exported results file", err=True)
        raise typer.Exit(1)
    return data


@app.command()
def report(
    results: str = typer.Argument(help="Path to an exported results.json"),
    out_dir: str | None = typer.Option(
        None, help="Directory for junit.xml (defaults to the results file directory)"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to terminal"
    ),
):
    """Regenerate junit.xml from an exported results file."""
    from pollcheck.reporting.junit import write_junit
    from pollcheck.verbose import setup_logger

    data = _load_results(results)
    target = Path(out_dir) if out_dir is not None else Path(results).parent
    target.mkdir(parents=True, exist_ok=True)

    debug_file = target / "debug.log"
    logger = setup_logger(debug_file, verbose=verbose, logger_name="pollcheck_report")
    logger.debug(f"Generating junit.xml from {results}")

    junit_path = write_junit(target, data, logger=logger)
    typer.echo(f"Report generated: {junit_path}")
    if not verbose:
        typer.echo(f"Debug log: {debug_file}")


@app.command()
def summary(
    results: str = typer.Argument(help="Path to an exported results.json"),
):
    """Print one line per test; exit non-zero if any test failed."""
    from pollcheck.formatting import format_elapsed_time, summarize_counts

    data = _load_results(results)

    has_failures = False
    for key, test in data["modules"].items():
        ok = not test.get("failed") and not test.get("errors")
        has_failures = has_failures or not ok
        status = "PASS" if ok else "FAIL"
        counts = summarize_counts(
            test.get("failed", 0),
            test.get("errors", 0),
            test.get("passed", 0),
            test.get("skipped", 0),
        )
        elapsed = format_elapsed_time(test.get("elapsedMs", 0))
        typer.echo(f"  {status}  {key} ({counts or 'no assertions'}, {elapsed})")

    total = format_elapsed_time(data.get("totalElapsedMs", 0), include_ms=True)
    typer.echo(f"Total: {len(data['modules'])} test(s) in {total}")

    if has_failures:
        raise typer.Exit(1)


@app.command()
def check(
    settings: str = typer.Argument(help="Path to settings YAML"),
):
    """Validate a settings file and print the effective values."""
    from pydantic import ValidationError

    from pollcheck.config import load_settings

    settings_path = Path(settings)
    if not settings_path.exists():
        typer.echo(f"Error: settings file not found: {settings}", err=True)
        raise typer.Exit(1)

    try:
        loaded = load_settings(settings_path)
    except (ValidationError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(loaded.model_dump(), indent=2))


@schema_app.command("generate")
def schema_generate(
    dir: str = typer.Option(
        "pollcheck", "--dir", help="Project directory for default schema/doc outputs"
    ),
    out: str | None = typer.Option(
        None,
        help="Output path for JSON Schema (defaults to <dir>/schemas/pollcheck.schema.json)",
    ),
    doc: str | None = typer.Option(
        None, help="Output path for schema docs (defaults to <dir>/docs/schema.md)"
    ),
):
    """Generate JSON Schema and docs for the settings YAML format."""
    from pollcheck.schema import write_json_schema, write_schema_doc

    project_dir = Path(dir)
    out_path = (
        Path(out)
        if out is not None
        else project_dir / "schemas" / "pollcheck.schema.json"
    )
    doc_path = Path(doc) if doc is not None else project_dir / "docs" / "schema.md"
    write_json_schema(out_path)
    write_schema_doc(doc_path)
    typer.echo(f"Wrote schema: {out_path}")
    typer.echo(f"Wrote docs: {doc_path}")
