"""auth/ -- Client-side session package for the CRM console.

Layer rule: auth/models.py and auth/store.py import only stdlib, third-party
libraries and core/. auth/session.py additionally uses services/auth.py to
reach the /auth endpoints. Nothing here imports from web/ or api/routes;
web/ imports from auth/, not the other way around.
"""
