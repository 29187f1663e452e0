from plugin_system.plugins.security.plugin import SECURITY_HEADERS, SecurityPlugin, create_security_plugin

__all__ = ["SECURITY_HEADERS", "SecurityPlugin", "create_security_plugin"]
