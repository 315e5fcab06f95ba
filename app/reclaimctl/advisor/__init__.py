"""Exchange with the external cleanup planner.

reclaimctl does not generate cleanup plans itself. It exports the data it
collected for a planner and normalizes the planner's untrusted answer
into typed cleanup items.

Public API:
- PlannerInput: Export model with disk usage and classified snapshots
- build_planner_input: Assemble the export from collected data
- export_planner_input: Write the export as JSON
- NormalizedPlan: Cleanup plan in the internal schema
- normalize_plan: Parse planner text into a NormalizedPlan (never raises)
- load_plan_file / save_plan: Persist plans as JSON
"""

from reclaimctl.advisor.exchange import (
    PlannerInput,
    build_planner_input,
    export_planner_input,
)
from reclaimctl.advisor.plan import (
    NormalizedPlan,
    load_plan_file,
    normalize_plan,
    save_plan,
)

__all__ = [
    "NormalizedPlan",
    "PlannerInput",
    "build_planner_input",
    "export_planner_input",
    "load_plan_file",
    "normalize_plan",
    "save_plan",
]
