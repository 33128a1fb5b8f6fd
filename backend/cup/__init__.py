"""
Cup - container image update checker

Queries OCI registries directly to find out whether the images running
locally have newer versions or digests available.
"""

__version__ = "3.0.0"
