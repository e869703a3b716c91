"""Command line entry points for the ride matching engine."""
