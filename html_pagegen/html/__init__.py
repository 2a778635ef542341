"""HTML tag generation and injection."""
