"""HTTP function server for the handler registry."""
