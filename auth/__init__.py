"""auth/ -- Authentication core for Conduit: credential storage, password
verification and stateless session tokens.

Layer rule: auth/ imports only stdlib + third-party libraries (and fastapi in
dependencies.py). It does NOT import from api/ or core/.
api/ imports from auth/, not the other way around.
"""
