"""Domain Layer: value objects, events, errors and interfaces (ports)."""
