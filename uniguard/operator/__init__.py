"""AVS operator: registration, task intake, scoring and signed responses."""
