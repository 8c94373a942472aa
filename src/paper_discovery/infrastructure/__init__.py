"""Infrastructure layer: external sources, caching and collaborators."""
