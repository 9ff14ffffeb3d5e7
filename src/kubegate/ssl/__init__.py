"""TLS certificate inspection and host conflict detection."""
