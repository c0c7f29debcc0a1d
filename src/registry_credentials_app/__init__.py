"""Registry credentials command-line application."""
