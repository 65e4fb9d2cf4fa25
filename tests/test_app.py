"""Tests for MCP server wiring."""

from __future__ import annotations

from mcp.server.lowlevel import Server

from tmux_pilot.server.app import build_context, create_server
from tmux_pilot.services.tmux import TmuxClient


class TestServerContext:
    def test_build_context_shares_registry(self, app_config):
        ctx = build_context(app_config)
        assert isinstance(ctx.tmux, TmuxClient)
        assert ctx.engine.registry is ctx.registry
        assert ctx.resources.engine is ctx.engine
        assert ctx.tools.engine is ctx.engine

    def test_contexts_are_independent(self, app_config):
        first = build_context(app_config)
        second = build_context(app_config)
        assert first.registry is not second.registry

    def test_engine_uses_configured_shell(self, app_config):
        app_config.shell.type = "fish"
        ctx = build_context(app_config)
        assert ctx.engine.shell.exit_status_var == "$status"

    def test_create_server(self, app_config, fake_tmux):
        server = create_server(build_context(app_config, tmux=fake_tmux))
        assert isinstance(server, Server)
        assert server.name == "tmux-pilot"
