"""Infrastructure layer: registry, dependency graph, backends, executor."""
