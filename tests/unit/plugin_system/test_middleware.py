"""
Tests for running the plugin chain as FastAPI middleware.

@testCovers plugin_system/lib/middleware.py
@testCovers plugin_system/main.py
"""

import asyncio
import unittest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from plugin_system.config import Settings
from plugin_system.lib.errors import CyclicDependencyError
from plugin_system.lib.middleware import PluginResponse, install_plugin_middleware
from plugin_system.lib.plugins import FunctionPlugin, PluginSystem
from plugin_system.main import build_plugin_system, create_app
from plugin_system.plugins import create_rate_limiter_plugin, create_security_plugin


def make_app(plugin_system: PluginSystem) -> tuple[FastAPI, list]:
    app = FastAPI()
    route_calls = []

    @app.get("/hello")
    async def hello():
        route_calls.append(True)
        return {"message": "hello"}

    install_plugin_middleware(app, plugin_system)
    return app, route_calls


class TestPluginResponse(unittest.TestCase):

    def test_end_encodes_text(self):
        response = PluginResponse()
        response.end("hi", media_type="text/plain")

        self.assertTrue(response.ended)
        self.assertEqual(response.body, b"hi")
        self.assertEqual(response.media_type, "text/plain")

    def test_end_twice_fails(self):
        response = PluginResponse()
        response.end()
        with self.assertRaises(RuntimeError):
            response.end()

    def test_json(self):
        response = PluginResponse()
        response.json({"a": 1}, status_code=418)

        self.assertEqual(response.status_code, 418)
        self.assertEqual(response.body, b'{"a": 1}')
        self.assertEqual(response.media_type, "application/json")


class TestPluginMiddleware(unittest.TestCase):
    """Test requests passing through the plugin middleware."""

    def test_fall_through_keeps_route_response_and_adds_headers(self):
        system = PluginSystem()
        system.register(create_security_plugin())
        app, route_calls = make_app(system)

        response = TestClient(app).get("/hello")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "hello"})
        self.assertEqual(response.headers["x-frame-options"], "SAMEORIGIN")
        self.assertEqual(response.headers["x-content-type-options"], "nosniff")
        self.assertEqual(len(route_calls), 1)

    def test_plugin_can_answer_request(self):
        """A plugin ending the response stops the request before the route."""
        def block(context, next_):
            context.response.status_code = 403
            context.response.set_header("X-Blocked", "yes")
            context.response.end("blocked", media_type="text/plain")

        system = PluginSystem()
        system.register(create_security_plugin())
        system.register(FunctionPlugin("block", block), after="security")
        app, route_calls = make_app(system)

        response = TestClient(app).get("/hello")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.text, "blocked")
        self.assertEqual(response.headers["x-blocked"], "yes")
        self.assertEqual(response.headers["referrer-policy"], "no-referrer")
        self.assertEqual(route_calls, [])

    def test_async_plugin_continuing_later(self):
        """A plugin may continue from a callback after its process step returned."""
        def deferred(context, next_):
            asyncio.get_running_loop().call_soon(next_)

        system = PluginSystem()
        system.register(FunctionPlugin("deferred", deferred))
        app, route_calls = make_app(system)

        response = TestClient(app).get("/hello")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(route_calls), 1)

    def test_failure_after_late_continuation_returns_500(self):
        """A plugin failing in a resumed chain fails the request instead of hanging."""
        def deferred(context, next_):
            asyncio.get_running_loop().call_soon(next_)

        def failing(context, next_):
            raise ValueError("boom")

        system = PluginSystem()
        system.register(FunctionPlugin("deferred", deferred))
        system.register(FunctionPlugin("failing", failing), after="deferred")
        app, route_calls = make_app(system)

        response = TestClient(app, raise_server_exceptions=False).get("/hello")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(route_calls, [])

    def test_rate_limit_through_http(self):
        system = PluginSystem()
        system.register(create_rate_limiter_plugin(max_requests=2, window_seconds=60))
        app, route_calls = make_app(system)
        client = TestClient(app)

        self.assertEqual(client.get("/hello").status_code, 200)
        self.assertEqual(client.get("/hello").status_code, 200)
        response = client.get("/hello")

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.text, "Too Many Requests")
        self.assertEqual(response.headers["retry-after"], "60")
        self.assertTrue(response.headers["content-type"].startswith("text/plain"))
        self.assertEqual(len(route_calls), 2)

    def test_plugin_error_is_not_swallowed(self):
        def failing(context, next_):
            raise ValueError("plugin failure")

        system = PluginSystem()
        system.register(FunctionPlugin("failing", failing))
        app, route_calls = make_app(system)

        response = TestClient(app, raise_server_exceptions=False).get("/hello")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(route_calls, [])

    def test_ordering_error_aborts_installation(self):
        system = PluginSystem()
        system.register(FunctionPlugin("a", lambda context, next_: next_(), before="b"))
        system.register(FunctionPlugin("b", lambda context, next_: next_(), before="a"))

        with self.assertRaises(CyclicDependencyError):
            make_app(system)


class TestCreateApp(unittest.TestCase):
    """Test the application factory."""

    def test_default_plugins_and_order(self):
        settings = Settings(_env_file=None)
        client = TestClient(create_app(settings))

        response = client.get("/api/plugins")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"order": ["rateLimiter", "security"]})
        self.assertEqual(response.headers["x-xss-protection"], "1; mode=block")

    def test_plugins_disabled(self):
        settings = Settings(_env_file=None, RATE_LIMIT_ENABLED=False, SECURITY_HEADERS_ENABLED=False)
        client = TestClient(create_app(settings))

        response = client.get("/api/health")

        self.assertEqual(response.json(), {"status": "ok"})
        self.assertNotIn("x-frame-options", response.headers)
        self.assertEqual(client.get("/api/plugins").json(), {"order": []})

    def test_rate_limit_from_settings(self):
        settings = Settings(_env_file=None, RATE_LIMIT_MAX_REQUESTS=1, RATE_LIMIT_WINDOW_SECONDS=30)
        client = TestClient(create_app(settings))

        self.assertEqual(client.get("/api/health").status_code, 200)
        response = client.get("/api/health")

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.headers["retry-after"], "30")
        # The security plugin runs after the limiter and never sees the blocked request
        self.assertNotIn("x-frame-options", response.headers)

    def test_strict_constraints_with_bundled_plugins(self):
        for rate_limit_enabled in (True, False):
            settings = Settings(_env_file=None, STRICT_CONSTRAINTS=True, RATE_LIMIT_ENABLED=rate_limit_enabled)
            system = build_plugin_system(settings)

            self.assertTrue(system.strict)
            self.assertEqual(system.get_execution_order()[-1].id, "security")
            security = system.get_execution_order()[-1]
            self.assertEqual(security.after, "rateLimiter" if rate_limit_enabled else None)

    def test_custom_plugin_system(self):
        system = PluginSystem()
        system.register(FunctionPlugin("only", lambda context, next_: next_()))
        client = TestClient(create_app(Settings(_env_file=None), plugin_system=system))

        self.assertEqual(client.get("/api/plugins").json(), {"order": ["only"]})


if __name__ == "__main__":
    unittest.main()
