"""Per-work-item equipment lifecycle state and draft reconciliation."""
