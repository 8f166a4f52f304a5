"""
FitTrack Pro - 个人健身追踪
"""

__version__ = "1.0.0"
