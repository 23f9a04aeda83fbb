"""Small helpers shared across deltasync."""
