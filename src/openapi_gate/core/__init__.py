"""Core building blocks: processes, downloads, retry, checksums, configuration."""
