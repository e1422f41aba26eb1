"""HTTP API for the neural graph engine."""
