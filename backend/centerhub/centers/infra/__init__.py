"""Infrastructure helpers scoped to the centers domain."""
