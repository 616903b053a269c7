"""HTTP surface for task admission and lookup."""
