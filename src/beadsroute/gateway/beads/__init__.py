"""Beads (bd) gateway: the Ops interface and its implementations."""
