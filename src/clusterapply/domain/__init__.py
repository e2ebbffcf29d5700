"""Domain layer: pure models, ports, and the reconciliation core."""
