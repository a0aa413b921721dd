"""Feature modules of the pet economy engine."""
