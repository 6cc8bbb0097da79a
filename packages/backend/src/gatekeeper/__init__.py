"""Gatekeeper — credential exchange and session layer.

Sits between the browser and an external identity backend (Strapi-style
/api/auth/* endpoints): signs users in and up, keeps one session per
browser context, and gates profile changes behind that session.
"""

__version__ = "0.1.0"
