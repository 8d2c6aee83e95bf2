"""snitchctl, inspect and manage the persisted reconciler state."""
