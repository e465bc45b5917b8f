"""Clients for upstream data sources."""
