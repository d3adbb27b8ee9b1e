"""Domain model, authorization policy, errors and use cases."""
