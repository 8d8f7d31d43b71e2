"""Domain layer: pure extraction, parsing and reconciliation logic."""
