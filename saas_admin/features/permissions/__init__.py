"""
Permission management feature module.

Roles, permissions and the resolver that flattens a user's direct and
role-derived permission codes.
"""
