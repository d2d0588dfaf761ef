"""
Job app models.

Imports every model from its own file to provide a single import point.
"""

from .job import Job
from .job_event import JobEvent

__all__ = [
    "Job",
    "JobEvent",
]
