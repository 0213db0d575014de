from __future__ import annotations

import os
from pathlib import Path

import yaml
from expandvars import expandvars
from pydantic import BaseModel, ConfigDict, Field, model_validator

PARALLEL_MODE_ENV = "POLLCHECK_PARALLEL_MODE"
WORKER_ENV = "POLLCHECK_ENV"


class ScreenshotSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = False
    on_error: bool = False
    on_failure: bool = False
    path: str = ""

    @model_validator(mode="after")
    def path_required_when_enabled(self) -> "ScreenshotSettings":
        """Expand ${VAR} references and require a path when screenshots are on.

        Raises ValueError naming the missing variable instead of silently
        writing screenshots to the current directory.
        """
        if self.path:
            try:
                self.path = expandvars(self.path, nounset=True)
            except Exception:
                raise ValueError(
                    f"screenshots.path has missing environment variables: {self.path}"
                )
        if self.enabled and not self.path:
            raise ValueError("screenshots.path must be set when screenshots are enabled")
        return self


class AssertionSettings(BaseModel):
    """Default retry policy for assertions that do not set their own."""

    model_config = ConfigDict(extra="forbid")
    timeout_ms: int = Field(default=5000, ge=0)
    poll_interval_ms: int = Field(default=500, gt=0)
    subject: str = "text"


class Settings(BaseModel):
    model_config = ConfigDict(extra="forbid")
    detailed_output: bool = True
    unit_tests_mode: bool = False
    start_session: bool = True
    screenshots: ScreenshotSettings = Field(default_factory=ScreenshotSettings)
    assertions: AssertionSettings = Field(default_factory=AssertionSettings)


def load_settings(path: Path) -> Settings:
    """Load and validate run settings from a YAML file."""
    config_dir = path.parent.resolve()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    settings = Settings(**raw)

    # Resolve relative screenshot paths relative to the settings file location
    screenshots_path = settings.screenshots.path
    if screenshots_path and not Path(screenshots_path).is_absolute():
        settings.screenshots.path = str((config_dir / screenshots_path).resolve())

    return settings


def is_child_process() -> bool:
    """True when running as a worker of a parallel suite."""
    return os.environ.get(PARALLEL_MODE_ENV) == "1"


def worker_label() -> str:
    """Opaque identity of the parallel worker, empty outside parallel runs."""
    return os.environ.get(WORKER_ENV, "")
