"""HTTP adapter for the consensus engine."""
