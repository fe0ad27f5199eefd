"""psshell implementation modules."""
