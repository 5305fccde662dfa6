"""
feedback_portal: Smart Feedback Portal web process.

Authenticated users submit free-text feedback; an external workflow
classifies it and the dashboard reflects the result live.
"""

__version__ = "1.0.0"
