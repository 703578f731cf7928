"""GitHub project sync, reconciliation and read services."""
