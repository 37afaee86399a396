"""HTTP surface for the ballot services."""
