"""Browser-context authentication for the HTTP surface.

Learn: Two layers:
1. jwt.py signs and verifies the context cookie (which browser is this?)
2. dependencies.py resolves that cookie to the context's SessionAuthority
   and, for protected routes, insists the authority holds a session.
"""
