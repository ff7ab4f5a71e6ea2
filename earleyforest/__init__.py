"""Shared packed parse forests for Earley parsers: null, bocage and compact bocage."""

__version__ = "0.1.0"

__all__ = ["forest", "order", "bocage_node", "bocage", "compact_node", "compact_bocage"]