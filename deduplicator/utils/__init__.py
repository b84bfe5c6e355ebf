"""Terminal helpers shared by the command-line interface."""
