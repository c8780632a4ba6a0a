"""
Quiesce - supervised runs of a bundled tool.

Installs a bundled tool, stops a conflicting OS service, runs the tool under
a hard time limit, restarts the service, and removes everything it
installed, reporting a single exit code.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from quiesce.core.config.models import RunConfig
from quiesce.core.errors import ExitCode
from quiesce.core.run.models import RunResult

__all__ = ["ExitCode", "RunConfig", "RunResult", "__version__"]
