"""Configuration management for nestrunner."""

import json
import math
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from nestrunner.core.scheduler import DEFAULT_TIMEOUT


class DiscoveryConfig(BaseModel):
    """Where test files are looked up."""

    test_directory: str = Field(default="tests", description="Directory searched for test files")
    patterns: list[str] = Field(
        default_factory=lambda: ["*_spec.py", "spec_*.py"],
        description="Glob patterns of test files",
    )

    @field_validator("patterns")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        if not v or not all(p.strip() for p in v):
            raise ValueError("At least one non-empty file pattern is required")
        return v


class ReportConfig(BaseModel):
    """Report generation configuration."""

    html: bool = Field(default=False, description="Also write an HTML report")
    output_dir: str = Field(default="./reports", description="Directory for report output")
    filename: str = Field(default="nestrunner_report.html", description="Report filename")
    title: str = Field(default="Test Results", description="Report title")


class RunnerConfig(BaseModel):
    """Main configuration for nestrunner."""

    suite_name: Optional[str] = Field(default=None, description="Name prefixed to every label")
    default_timeout: float = Field(
        default=DEFAULT_TIMEOUT, description="Seconds an async test or hook may take"
    )
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)

    @field_validator("default_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if math.isnan(v) or v <= 0:
            raise ValueError("Default timeout must be positive")
        return v

    @classmethod
    def from_file(cls, path: Path | str) -> "RunnerConfig":
        """Load configuration from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def find_and_load(cls, start_dir: Path | str | None = None) -> "RunnerConfig":
        """Find and load configuration file, searching up the directory tree."""
        if start_dir is None:
            start_dir = Path.cwd()
        else:
            start_dir = Path(start_dir)

        config_names = ["nestrunner.json", ".nestrunner.json"]

        current = start_dir.resolve()
        for directory in [current, *current.parents]:
            for name in config_names:
                config_path = directory / name
                if config_path.exists():
                    return cls.from_file(config_path)

        raise FileNotFoundError(
            "No configuration file found. Create nestrunner.json or run 'nestrunner init'"
        )

    def to_file(self, path: Path | str) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

    def get_absolute_paths(self, base_dir: Path | str | None = None) -> dict[str, Path]:
        """Get absolute paths for various config paths."""
        if base_dir is None:
            base_dir = Path.cwd()
        else:
            base_dir = Path(base_dir)

        return {
            "test_directory": (base_dir / self.discovery.test_directory).resolve(),
            "report_output_dir": (base_dir / self.report.output_dir).resolve(),
        }


def get_default_config() -> RunnerConfig:
    """Return a default configuration."""
    return RunnerConfig()


def create_example_config(output_path: Path | str) -> Path:
    """Create an example configuration file."""
    output_path = Path(output_path)
    config = get_default_config()
    config.suite_name = "my-project"
    config.to_file(output_path)
    return output_path
