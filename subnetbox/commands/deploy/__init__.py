"""
Deploy module - subnet deployment sequencing.
"""

from subnetbox.commands.deploy.deploy import deploy_command

__all__ = ["deploy_command"]
