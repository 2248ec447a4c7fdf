"""
Jobs package - background refresh scheduling
"""
from hymnal.jobs.scheduler import ConnectivityMonitor

__all__ = ["ConnectivityMonitor"]
