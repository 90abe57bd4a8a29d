"""core/ -- Kernel package for useraccess: configuration and the Result type.

Layer rule: core/ imports only stdlib + third-party libraries.
It does NOT import from auth/. auth/ imports from core/, not the other way around.
"""
