"""Classification and tiered dispatch."""
