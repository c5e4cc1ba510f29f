"""Capabilities that agents expose to the router."""
