"""
feedback_portal.core: Logging, error taxonomy and shared pure helpers.

Nothing in here imports from the gateway, service or router layers.
"""
