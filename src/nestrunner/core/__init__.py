"""Core scheduling and execution functionality."""

from nestrunner.core.builder import Suite
from nestrunner.core.engine import Engine
from nestrunner.core.models import Completion, Group, HookKind, Unit
from nestrunner.core.scheduler import Scheduler

__all__ = ["Completion", "Engine", "Group", "HookKind", "Scheduler", "Suite", "Unit"]
