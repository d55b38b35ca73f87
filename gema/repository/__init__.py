"""SQLite-backed persistence for the domain models."""