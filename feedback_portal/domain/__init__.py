"""
feedback_portal.domain: Canonical data models and enumerations.

This package defines the source-of-truth types shared across every layer
of the portal. Nothing in here should import from other feedback_portal
sub-packages (only stdlib / third-party Pydantic).
"""
