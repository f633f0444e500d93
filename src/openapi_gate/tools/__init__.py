"""External tool descriptors, versions and installers."""
