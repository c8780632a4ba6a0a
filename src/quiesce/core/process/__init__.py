"""
Bounded execution of the supervised tool.
"""

from .models import Deadline, ProcessHandle, ProcessResult
from .runner import BoundedProcessRunner, popen_launcher

__all__ = [
    "BoundedProcessRunner",
    "Deadline",
    "ProcessHandle",
    "ProcessResult",
    "popen_launcher",
]
