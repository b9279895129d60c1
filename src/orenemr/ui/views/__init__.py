"""Page renderers, one module per family of routes."""
