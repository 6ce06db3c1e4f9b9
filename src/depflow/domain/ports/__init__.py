"""Ports the reconciliation core consumes from its surroundings."""
