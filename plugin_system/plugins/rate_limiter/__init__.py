from plugin_system.plugins.rate_limiter.plugin import (
    RateLimiterPlugin,
    RateLimitInfo,
    RateLimitRecord,
    create_rate_limiter_plugin,
)

__all__ = ["RateLimiterPlugin", "RateLimitInfo", "RateLimitRecord", "create_rate_limiter_plugin"]
