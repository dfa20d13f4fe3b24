"""
Point Cloud Reading Module

Reads point records and header metadata from LAS/LAZ files.
"""

from .loader import PointCloudLoader, PointRecords

__all__ = [
    "PointCloudLoader",
    "PointRecords",
]
