"""
Home maintenance domain.

Components:
- models.py: entity shapes (TypedDicts) and structural parsers
- recurrence.py: next due date of a recurring task, with catch-up re-anchoring
- service.py: HomeData, the facade every consumer calls
"""
