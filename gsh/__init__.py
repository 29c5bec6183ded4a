"""
gsh - per-shell SSH agent sessions

Reuses the ssh-agent remembered for this session while it is alive, starts
a new one when it is not, and prints the shell statements that point the
calling shell at it.
"""

__version__ = "1.0.0"
__license__ = "Apache License 2.0"
