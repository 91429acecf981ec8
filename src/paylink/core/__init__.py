"""Core models, configuration, logging and error classification for paylink."""
