"""Proxy server."""

from screenvision.infrastructure.proxy.server import ProxyServer, parse_history

__all__ = ["ProxyServer", "parse_history"]
