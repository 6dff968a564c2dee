"""rshell -- a command shell with a remote execution relay.

Lines prefixed with ``!`` run locally, either as built-ins or as child
processes located through a fixed search path. Every other line is
forwarded over TCP to a command-execution server and whatever the server
streams back is printed. A leading ``&`` runs either kind in the
background.
"""

__version__ = "2.0.0"
