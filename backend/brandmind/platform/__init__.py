"""Cross-cutting platform concerns: errors, request context, audit trail."""
