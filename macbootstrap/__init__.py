"""mac-bootstrap — idempotent provisioning for a fresh macOS machine."""

__version__ = "0.1.0"
