"""Core business logic modules for the Gymly sync application.

This package contains the sync core organized by data source:
- preferences: Replicated fitness preferences
- remote: Remote document database access and profile sync
- sync: Session orchestration, polling, merge and background watcher
"""

__all__: list[str] = []
