"""Azure DevOps to GitHub Migration Tool

Moves a single repository from Azure DevOps to GitHub: mirror transfer of
all refs, repointing of the build pipeline that consumed it, translation of
group permissions into GitHub team memberships, and a final validation pass.
"""

__version__ = '0.1.0'

from .cli import main

__all__ = ['main']
