"""Generate JSON Schema and docs for the settings YAML format."""

from __future__ import annotations

import json
from pathlib import Path

from pollcheck.config import Settings


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def generate_json_schema() -> dict:
    return Settings.model_json_schema()


def write_json_schema(path: Path) -> None:
    _ensure_parent(path)
    schema = generate_json_schema()
    path.write_text(json.dumps(schema, indent=2) + "\n")


def _describe_properties(props: dict, lines: list[str], indent: str = "") -> None:
    for name, prop in props.items():
        kind = prop.get("type", "object")
        default = prop.get("default")
        suffix = f" (default: `{json.dumps(default)}`)" if default is not None else ""
        lines.append(f"{indent}- `{name}`: {kind}{suffix}")


def generate_schema_doc() -> str:
    schema = generate_json_schema()
    defs = schema.get("$defs", {})

    lines: list[str] = []
    lines.append("# pollcheck settings schema")
    lines.append("")
    lines.append("This doc is generated from the Pydantic models.")
    lines.append("")
    lines.append("## Top-level keys")
    _describe_properties(schema.get("properties", {}), lines)

    for section, model_name in (
        ("screenshots", "ScreenshotSettings"),
        ("assertions", "AssertionSettings"),
    ):
        lines.append("")
        lines.append(f"## `{section}`")
        _describe_properties(defs.get(model_name, {}).get("properties", {}), lines)

    lines.append("")
    return "\n".join(lines)


def write_schema_doc(path: Path) -> None:
    _ensure_parent(path)
    path.write_text(generate_schema_doc())
