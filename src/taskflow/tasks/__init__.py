"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskFilter, TaskStats, SubtaskStats)
- task_search.py: match predicate + bounded search cache
- task_engine.py: in-memory hierarchy engine (mutations, queries, persistence)
- task_api.py: small high-level helpers used by the presentation layer
"""
