"""Declarative input resources and schema-version adapters."""
