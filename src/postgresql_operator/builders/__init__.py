"""Pure builders for the resources managed per PostgreSQL cluster."""
