"""Account reconciliation domain: patron records, policies and workflows."""
