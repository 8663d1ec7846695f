"""Test file discovery and loading."""

import importlib.util
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Iterable, Optional

from nestrunner.config import RunnerConfig
from nestrunner.core.builder import Suite

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Result of test file discovery."""

    files: list[Path] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def total_count(self) -> int:
        return len(self.files)

    @property
    def success(self) -> bool:
        """Check if discovery was successful."""
        return self.error is None


class SuiteDiscovery:
    """Finds the files that define tests."""

    def __init__(self, config: RunnerConfig, base_dir: Path):
        """Initialize test discovery."""
        self.config = config
        self.base_dir = base_dir
        self.test_dir = config.get_absolute_paths(base_dir)["test_directory"]

    def discover(self, paths: Iterable[Path | str] = ()) -> DiscoveryResult:
        """Discover test files.

        Explicit ``paths`` may name files or directories; without them the
        configured test directory is searched.
        """
        roots = [Path(p) for p in paths] or [self.test_dir]
        files: list[Path] = []

        for root in roots:
            if not root.is_absolute():
                root = self.base_dir / root
            if root.is_file():
                files.append(root)
            elif root.is_dir():
                files.extend(self._search(root))
            else:
                return DiscoveryResult(error=f"Test path not found: {root}")

        # keep the first occurrence, in a stable order
        unique = list(dict.fromkeys(f.resolve() for f in files))
        logger.debug("Discovered %d test files", len(unique))
        return DiscoveryResult(files=unique)

    def _search(self, directory: Path) -> list[Path]:
        found: set[Path] = set()
        for pattern in self.config.discovery.patterns:
            found.update(p for p in directory.rglob(pattern) if p.is_file())
        return sorted(found)


def _module_name(label: str) -> str:
    """Dotted module name for a test file, unique per relative path."""
    parts = [re.sub(r"\W", "_", part) for part in PurePath(label).with_suffix("").parts]
    return ".".join(["nestrunner_tests", *parts])


def _import_file(path: Path, module_name: str) -> None:
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load test file: {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)


def load_test_files(suite: Suite, files: Iterable[Path], base_dir: Optional[Path] = None) -> None:
    """Execute each test file inside a group named after it.

    A file that fails to import becomes a failing group instead of
    aborting the load.
    """
    for path in files:
        label = str(path)
        if base_dir is not None:
            try:
                label = str(path.relative_to(base_dir))
            except ValueError:
                pass
        suite.set_file(label)
        suite.group(label, lambda path=path, name=_module_name(label): _import_file(path, name))
    suite.set_file(None)
