"""
Async list controllers for the admin console.

Each managed resource (organizations, clients, users, permissions, roles)
gets a ListController that keeps one fetched page plus filter, sort and
pagination state, talking to the /admin REST API through AdminApiClient.
"""
