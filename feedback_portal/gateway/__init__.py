"""
feedback_portal.gateway: Clients for the managed backend services.

Import surface::

    from feedback_portal.gateway.client   import BackendClient
    from feedback_portal.gateway.auth     import AuthGateway
    from feedback_portal.gateway.store    import FeedbackStore
    from feedback_portal.gateway.realtime import RealtimeClient, Subscription
"""
