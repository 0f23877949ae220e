"""
Tugboat - keeps many independently hosted git repositories in step.

Targets (whole organizations or single repositories with nested foldouts)
are expanded into local working copies, inspected in parallel, checked
against the hosting provider and pulled, pushed or cloned as needed.
"""

__version__ = "0.3.0"
__author__ = "Tugboat Team"
__description__ = "Concurrent reconciliation of local and remote git repositories"

__all__ = ["__version__"]
