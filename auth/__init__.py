"""auth/ -- Authentication and authorization core for Gatekeeper.

Layer rule: auth/ imports only stdlib + third-party libraries.
It does NOT import from api/ or core/. Configuration (secret key, token
lifetime, bcrypt cost) is injected by the caller at construction time.
api/ imports from auth/, not the other way around.
"""
