"""Site configuration commands."""
