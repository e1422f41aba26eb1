"""Graph store adapters — in-memory and SQLite-backed."""
