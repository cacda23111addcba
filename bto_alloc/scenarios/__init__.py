"""End-to-end scenarios driving the allocation service."""

from bto_alloc.scenarios.launch import LaunchExerciseScenario

__all__ = ["LaunchExerciseScenario"]
