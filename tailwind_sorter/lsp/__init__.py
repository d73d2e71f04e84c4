"""Language server protocol plumbing: framing, messages and dispatch."""
