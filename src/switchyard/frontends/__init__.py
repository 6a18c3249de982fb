"""User-facing frontends for Switchyard."""
