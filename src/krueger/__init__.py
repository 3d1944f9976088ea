"""krueger - kill watched processes when the outbound IP address changes."""
