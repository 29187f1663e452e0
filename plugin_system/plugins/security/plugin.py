"""
Security headers plugin.

Adds a fixed set of hardening headers to every response and continues
the chain. Runs after the ``cors`` plugin when one is registered.
"""

from typing import Callable

from plugin_system.lib.middleware import HttpContext
from plugin_system.lib.plugins.plugin_base import Plugin, PluginIds

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}


class SecurityPlugin(Plugin):
    id = "security"
    after = "cors"

    def process(self, context: HttpContext, next_: Callable[[], None]) -> None:
        for name, value in SECURITY_HEADERS.items():
            context.response.set_header(name, value)
        next_()


def create_security_plugin(after: PluginIds | None = "cors") -> SecurityPlugin:
    """
    Create the security headers plugin.

    Args:
        after: Id(s) of plugins the headers are set after; None for no constraint
    """
    plugin = SecurityPlugin()
    plugin.after = after
    return plugin
