"""
Start the plugin system API with uvicorn.

Host and port come from the application settings (.env.plugins or environment).
"""

import uvicorn

from plugin_system.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("plugin_system.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.log_level.lower())
