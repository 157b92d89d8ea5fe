"""HTTP platform concerns: error shapes and handlers."""
