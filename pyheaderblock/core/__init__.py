"""Rule compilation, matching and the decision engine."""
