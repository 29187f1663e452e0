"""
Bundled plugins.

Each plugin lives in its own directory with a plugin.py module and tests.
"""

from plugin_system.plugins.rate_limiter import create_rate_limiter_plugin
from plugin_system.plugins.security import create_security_plugin

__all__ = ["create_rate_limiter_plugin", "create_security_plugin"]
