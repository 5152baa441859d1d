"""Domain layer - ports, state machines and pure domain logic."""
