"""Stage 2: compile a parsed intent into a parameterized query, execute it, shape the result."""
