"""
subnetbox - bootstrap a multi-validator subnet with Docker-hosted nodes.
"""

__version__ = "0.1.0"
