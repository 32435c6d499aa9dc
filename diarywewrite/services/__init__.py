"""Integrations with the database, the session store and identity providers."""
