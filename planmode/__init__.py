"""planmode — plan-session orchestration for read-only coding assistants."""

__version__ = "0.1.0"
