"""Change-set selection from git state."""
