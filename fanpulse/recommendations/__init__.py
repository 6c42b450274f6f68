"""Campaign recommendations for tracked fandoms."""
