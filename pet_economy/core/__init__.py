"""Core infrastructure: configuration, logging, events, exceptions and wiring."""
