"""Food court point-of-sale service."""
