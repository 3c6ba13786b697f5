"""Autonomous loop scheduler module."""

from .prompts import build_plan_prompt, build_reason_prompt, build_system_prompt, parse_plan
from .scheduler import AutonomousScheduler, CancellationToken, IAutonomousScheduler

__all__ = [
    "AutonomousScheduler",
    "CancellationToken",
    "IAutonomousScheduler",
    "build_plan_prompt",
    "build_reason_prompt",
    "build_system_prompt",
    "parse_plan",
]
