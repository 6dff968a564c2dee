"""Local execution for rshell.

Public API:
    ProcessLauncher -- runs external commands through the search path
    Supervisor -- tracks and reaps detached background tasks
    page_file -- the built-in ``more`` pager
"""

from rshell.local.launcher import ProcessLauncher
from rshell.local.pager import page_file
from rshell.local.supervisor import Supervisor

__all__ = ["ProcessLauncher", "Supervisor", "page_file"]
