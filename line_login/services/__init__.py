"""Services for the LINE authentication flow and its provider integration."""
