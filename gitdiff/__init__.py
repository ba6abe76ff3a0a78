"""
Git commit-pair diff driver: browse history, mark two commits, diff files.
"""

__version__ = "0.3.0"
