from .run_store import InMemoryRunStore, PostgresRunStore, RunStore, build_run_store

__all__ = ["InMemoryRunStore", "PostgresRunStore", "RunStore", "build_run_store"]
