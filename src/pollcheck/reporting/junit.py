from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml
from junitparser import Error, Failure, JUnitXml, Skipped, TestCase, TestSuite

from pollcheck.ledger import ExportSnapshot


def write_junit(
    run_dir: Path, results: dict[str, Any], logger: logging.Logger | None = None
) -> Path:
    """Write junit.xml from an exported results dict, return path."""
    logger = logger or logging.getLogger(__name__)
    xml = JUnitXml()

    for key, test in results.get("modules", {}).items():
        suite = TestSuite(key)

        for prop in ("module", "group", "passed", "failed", "errors", "skipped"):
            val = test.get(prop)
            if val not in (None, ""):
                suite.add_property(prop, str(val))
        for index, screenshot in enumerate(test.get("screenshots", [])):
            suite.add_property(f"screenshot_{index}", screenshot)

        # Test cases: one per logged assertion
        for assertion in test.get("assertions", []):
            case = TestCase(assertion.get("message", ""))
            case.classname = test.get("module", "")
            if assertion.get("failure"):
                failure = Failure(assertion.get("fullMsg") or assertion.get("message", ""))
                failure.text = assertion.get("stackTrace", "")
                case.result = [failure]
            suite.add_testcase(case)

        last_error = test.get("lastError")
        if test.get("errors") and last_error:
            case = TestCase(test.get("testName") or key)
            case.classname = test.get("module", "")
            case.result = [Error(last_error.get("message", ""), last_error.get("name"))]
            suite.add_testcase(case)

        for _ in range(test.get("skipped", 0)):
            case = TestCase(test.get("testName") or key)
            case.classname = test.get("module", "")
            case.result = [Skipped()]
            suite.add_testcase(case)

        # Set time after add_testcase (add_testcase resets it via update_statistics)
        suite.time = float(test.get("elapsedMs") or 0) / 1000

        # Use append (not +=) to preserve properties and time
        xml.append(suite)
        logger.debug(
            f"junit suite {key}: {len(test.get('assertions', []))} assertion(s), "
            f"{test.get('errors', 0)} error(s), {test.get('skipped', 0)} skipped"
        )

    junit_path = run_dir / "junit.xml"
    xml.write(str(junit_path), pretty=True)
    logger.debug(f"Wrote {junit_path}")
    return junit_path


def write_results(
    run_dir: Path,
    snapshot: ExportSnapshot,
    suite_name: str = "",
    logger: logging.Logger | None = None,
) -> Path:
    """Write results.json, junit.xml and meta.yaml to the run directory."""
    run_dir.mkdir(parents=True, exist_ok=True)
    results = snapshot.to_dict()

    results_path = run_dir / "results.json"
    results_path.write_text(json.dumps(results, indent=2, default=str))

    write_junit(run_dir, results, logger=logger)

    try:
        import importlib.metadata

        pollcheck_version = importlib.metadata.version("pollcheck")
    except Exception:
        pollcheck_version = "unknown"

    meta: dict[str, Any] = {
        "run_id": run_dir.name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "suite": suite_name,
        "tests": list(results["modules"].keys()),
        "total_elapsed_ms": results["totalElapsedMs"],
        "pollcheck_version": pollcheck_version,
    }
    (run_dir / "meta.yaml").write_text(yaml.dump(meta, default_flow_style=False))

    return results_path
