"""
feedback_portal.services: Login flow, submission form, live list
reconciliation and presentation helpers.
"""
