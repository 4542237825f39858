"""Purchase token reconciliation domain."""
