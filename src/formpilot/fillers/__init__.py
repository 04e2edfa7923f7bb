"""Per-platform DOM capabilities used by the command interpreter."""

from formpilot.fillers.base import FormFiller

__all__ = ["FormFiller"]
