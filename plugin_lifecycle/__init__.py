"""Plugin lifecycle registry: registration, dependency resolution and activation of feature plugins."""
