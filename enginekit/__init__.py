"""Core building blocks for a small game engine: systems, contexts, ticks, timers, entities and input."""

__version__ = "0.1.0"
__all__ = ["context", "entities", "errors", "frame_timers", "input", "system", "tick"]