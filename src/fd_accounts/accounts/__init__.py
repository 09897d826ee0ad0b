"""Account lifecycle services: creation, lookup, withdrawal, statements, reports."""
