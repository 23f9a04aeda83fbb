"""Storage backends for versioned contexts."""
