"""Context composition for staged story generation (story, acts, plot points, scenes)."""
