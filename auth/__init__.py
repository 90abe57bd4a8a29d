"""auth/ -- Authentication and credential-management package for useraccess.

Sign-in / sign-out, credential hashing, session-token issuance, the login
audit trail, and account add/update/delete with credential invariants.

Layer rule: auth/ imports stdlib, third-party libraries, and core/ only.
Nothing in core/ imports from auth/.
"""
