"""Command groups for nimctl."""
