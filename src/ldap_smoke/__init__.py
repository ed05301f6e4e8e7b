"""
ldap-smoke - Smoke tests for a containerized OpenLDAP directory

Finds the container backend running the directory, runs connectivity,
TLS-enforcement and data-import checks through the container's own
ldapsearch, and streams the results as a colored report.
"""

__version__ = "1.0.0"
__description__ = "Smoke tests for a containerized OpenLDAP directory"

__all__ = [
    "__version__",
    "__description__",
]
