"""Canopy: browse OCI compartments and the IAM policies attached to them."""

__version__ = "0.1.0"
