"""auth/ -- Authentication and authorization package for the SMU user API.

Layer rule: auth/ imports only stdlib + third-party libraries (and core/ for
settings). It does NOT import from api/ or client/.
api/ imports from auth/, not the other way around.
"""
