"""Command implementations for the agentcontext CLI."""
