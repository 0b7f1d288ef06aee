"""Trim merged branches from a git remote.

Features:
- Find remote branches already merged into the main branch
- Keep main, HEAD and (optionally) develop
- Dry run preview and confirmation before deletion
- Partial failures are reported, never fatal
"""

__version__ = "1.0.0"
