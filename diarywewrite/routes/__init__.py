"""Flask routes for the diary application."""
