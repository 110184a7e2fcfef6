"""User-facing connectors (interactive console)."""
