"""Clinical media intake bot."""
