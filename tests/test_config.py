"""Tests for the configuration module."""

import json
import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from nestrunner.config import (
    DiscoveryConfig,
    ReportConfig,
    RunnerConfig,
    create_example_config,
    get_default_config,
)
from nestrunner.core.scheduler import DEFAULT_TIMEOUT


class TestDiscoveryConfig:
    """Tests for DiscoveryConfig."""

    def test_default_values(self):
        """Test default values are set correctly."""
        config = DiscoveryConfig()
        assert config.test_directory == "tests"
        assert config.patterns == ["*_spec.py", "spec_*.py"]

    def test_patterns_validation(self):
        """Test that at least one non-empty pattern is required."""
        with pytest.raises(ValidationError):
            DiscoveryConfig(patterns=[])
        with pytest.raises(ValidationError):
            DiscoveryConfig(patterns=["*_spec.py", "  "])


class TestReportConfig:
    """Tests for ReportConfig."""

    def test_default_values(self):
        """Test default values are set correctly."""
        config = ReportConfig()
        assert config.html is False
        assert config.output_dir == "./reports"
        assert config.filename == "nestrunner_report.html"


class TestRunnerConfig:
    """Tests for RunnerConfig."""

    def test_default_config(self):
        """Test creating a default configuration."""
        config = get_default_config()
        assert config.suite_name is None
        assert config.default_timeout == DEFAULT_TIMEOUT
        assert config.discovery.test_directory == "tests"

    def test_timeout_validation(self):
        """Test that the default timeout must be positive."""
        with pytest.raises(ValueError):
            RunnerConfig(default_timeout=0)
        with pytest.raises(ValueError):
            RunnerConfig(default_timeout=-1)
        with pytest.raises(ValueError):
            RunnerConfig(default_timeout=float("nan"))

    def test_from_file(self):
        """Test loading configuration from a file."""
        config_data = {
            "suite_name": "math",
            "default_timeout": 1.5,
            "discovery": {"test_directory": "checks", "patterns": ["test_*.py"]},
        }

        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump(config_data, f)
            f.flush()

            config = RunnerConfig.from_file(f.name)
            assert config.suite_name == "math"
            assert config.default_timeout == 1.5
            assert config.discovery.patterns == ["test_*.py"]
            assert config.report.html is False

    def test_from_file_not_found(self):
        """Test loading from non-existent file raises error."""
        with pytest.raises(FileNotFoundError):
            RunnerConfig.from_file("/nonexistent/path.json")

    def test_find_and_load_searches_parents(self, tmp_path):
        """Test that configuration is found in a parent directory."""
        RunnerConfig(suite_name="parent").to_file(tmp_path / ".nestrunner.json")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        config = RunnerConfig.find_and_load(nested)

        assert config.suite_name == "parent"

    def test_to_file(self):
        """Test saving configuration to a file."""
        config = get_default_config()
        config.report.html = True

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "config.json"
            config.to_file(path)

            assert path.exists()

            loaded = RunnerConfig.from_file(path)
            assert loaded.report.html is True

    def test_create_example_config(self):
        """Test creating an example configuration file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "example.json"
            result = create_example_config(path)

            assert result == path
            assert path.exists()

            with open(path) as f:
                data = json.load(f)
                assert data["suite_name"] == "my-project"
                assert "discovery" in data
                assert "report" in data

    def test_get_absolute_paths(self):
        """Test getting absolute paths from config."""
        config = get_default_config()

        with tempfile.TemporaryDirectory() as tmpdir:
            base_dir = Path(tmpdir)
            paths = config.get_absolute_paths(base_dir)

            assert paths["test_directory"].is_absolute()
            assert str(paths["test_directory"]).endswith("tests")
            assert str(paths["report_output_dir"]).endswith("reports")
