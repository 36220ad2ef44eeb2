from .dispatcher import JOBS, run_job, validate_job_type

__all__ = ["JOBS", "run_job", "validate_job_type"]
