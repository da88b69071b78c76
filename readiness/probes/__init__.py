"""Probe collection: command executors, the probe battery and host facts."""
