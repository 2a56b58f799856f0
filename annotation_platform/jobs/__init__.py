from .config_loader import JobConfig, load_job_config
from .sinks import write_output

__all__ = ["JobConfig", "load_job_config", "write_output"]
