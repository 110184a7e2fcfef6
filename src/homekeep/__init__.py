"""
homekeep: local persistent data layer for a home maintenance tracker.

Subpackages:
- core/: ports (KeyValueStore protocol) and exceptions
- storage/: key-value stores, schema migrations, startup, typed loads, cached mutations
- home/: entity shapes, recurrence arithmetic, and the HomeData facade
- cli/: console entrypoint and slash commands
"""

__version__ = "0.1.0"
