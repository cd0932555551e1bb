"""Adapters binding the playground core to external tools."""
