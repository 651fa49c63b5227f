"""auth/ -- Authentication package for crewbase.

Credential verification, bearer-token issue/resolve/revoke, and the FastAPI
dependency that turns an Authorization header into a User.

Layer rule: auth/ imports only stdlib, third-party libraries, and core/.
It does NOT import from api/ or org/. api/ imports from auth/, not the other
way around.
"""
