"""Command line for local analysis and the remote report API."""
