# Store module - persistence interfaces with in-memory and PostgreSQL backends
