"""Infrastructure: logging and database session management."""
