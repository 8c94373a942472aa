"""Presentation Layer - MCP server exposing the search pipeline."""
