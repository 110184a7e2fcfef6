"""
Storage subsystem.

Components:
- kv_store.py: durable key-value stores (SQLite on disk, in-memory)
- keys.py: persisted key namespace and collection identifiers
- migrations.py: SchemaMigrator + registered migration steps
- initializer.py: memoized, retry-bounded startup (migrate, then first-run seed)
- repository.py: validated load-with-fallback and the collection registry
- cache.py: QueryCache + CacheSyncMutator (read cache -> transform -> persist -> publish)
- seed.py: first-run datasets
"""
