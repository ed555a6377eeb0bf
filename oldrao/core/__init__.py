"""
Core module initialization.
Exports configuration, logging and session security helpers.
"""

from oldrao.core.config import get_settings, setup_logging, Settings, EnvironmentMode

__all__ = ["get_settings", "setup_logging", "Settings", "EnvironmentMode"]
