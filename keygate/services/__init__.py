"""Integrations with the credential store and upstream services."""
