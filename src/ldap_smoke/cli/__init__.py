"""ldap-smoke command line interface."""
