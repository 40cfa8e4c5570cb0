"""Building blocks for JSON-RPC 2.0 servers: errors, parameters, ID providers, logging and HTTP helpers."""

__version__ = "0.1.0"

__all__ = ["errors", "params", "logs", "id_providers", "http_helpers", "server"]