# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Pending Plugins CLI

Usage:
    pending-plugins fetch -o _data             # Full run
    pending-plugins fetch -s .state/last-pr    # Incremental run
    pending-plugins config                     # Show configuration
    pending-plugins config set repo owner/name # Set a config value
"""

from .main import cli, main

__all__ = ['cli', 'main']
