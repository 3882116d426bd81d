"""Value objects for patrons, identity accounts and group policies."""
