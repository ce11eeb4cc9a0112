"""Release lifecycle core for a package registry."""
