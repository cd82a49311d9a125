"""
Customers module.

Scope:
- Self-service: register, login, read/update own profile, change password
- Admin: list, read, update (no password), hard delete, password reset
"""
