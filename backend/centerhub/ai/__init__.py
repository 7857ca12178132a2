"""Text generation for categorisation, districts, fixtures and projections."""
