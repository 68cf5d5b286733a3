"""Shell adapters — local process execution."""
