"""HTTP endpoints served on the client's own origin."""
