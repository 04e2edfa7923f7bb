"""FormPilot: declarative form filling and bulk form testing for career portals."""

__version__ = "0.3.0"
