"""Core: simulated clock, settings, errors, logging."""
