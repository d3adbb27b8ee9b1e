"""HTTP layer: routes and error envelope handlers."""
