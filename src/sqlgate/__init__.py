"""sqlgate: a SQL safety gate with confirmation tokens for agent-issued writes."""

__version__ = "0.1.0"
