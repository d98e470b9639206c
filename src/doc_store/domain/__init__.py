"""Domain layer: value objects, entities, services and errors."""
