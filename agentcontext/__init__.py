"""agentcontext - session debt and consolidation ledger."""

__version__ = "0.4.0"
