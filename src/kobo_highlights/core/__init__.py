"""Source reading, reconciliation and run orchestration."""
