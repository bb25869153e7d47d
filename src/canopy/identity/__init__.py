"""Upstream identity service access."""

from canopy.identity.models import GroupingNode, Policy
from canopy.identity.proxy import IdentityProxy

__all__ = ["GroupingNode", "IdentityProxy", "Policy"]
