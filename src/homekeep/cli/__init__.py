"""Console entrypoint (`homekeep`) and slash commands."""
