"""Infrastructure adapters (database repositories, external providers)."""
