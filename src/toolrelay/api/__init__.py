"""HTTP surface for the relay."""
