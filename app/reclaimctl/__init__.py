"""reclaimctl - Safe, operator-approved disk space reclamation.

Inspects storage usage, classifies snapshots, normalizes cleanup plans
from an external planner, and executes approved actions behind a
command safety validator.
"""

__version__ = "0.1.0"
