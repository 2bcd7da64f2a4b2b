"""
Third-party integrations: Slack Web API and SumUp Checkouts API.

Clients take an ``IntegrationSettings`` instance and raise
``UpstreamServiceError`` (or a subclass) on any upstream failure.
"""
