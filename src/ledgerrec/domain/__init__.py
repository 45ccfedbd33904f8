"""Domain layer for ledgerrec: reconciliation entities, rules and services."""
