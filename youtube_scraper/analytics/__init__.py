"""
Dashboard analytics: projections over classified comments and selection state.
"""

from .dashboard import DashboardService, Projections, build_projections
from .selection import SelectionState

__all__ = ["DashboardService", "Projections", "SelectionState", "build_projections"]
