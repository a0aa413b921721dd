"""Domain layer: immutable economy models and the exception registry."""
