"""
Run orchestration: stage, quiesce the service, run the tool, restore, clean up.
"""

from .models import RunResult, RunState
from .orchestrator import RunOrchestrator

__all__ = ["RunOrchestrator", "RunResult", "RunState"]
