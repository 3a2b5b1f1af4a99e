"""Terminal output for the testshard CLI."""
