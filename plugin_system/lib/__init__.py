"""
Library modules of the plugin system.

Usage:
    from plugin_system.lib.plugins import PluginSystem
    from plugin_system.lib.middleware import install_plugin_middleware
"""
