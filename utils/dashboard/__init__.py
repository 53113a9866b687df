"""
Dashboard metrics.
"""

from .dashboard_data import DashboardData

__all__ = ['DashboardData']
