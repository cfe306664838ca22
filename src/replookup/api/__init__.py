"""HTTP boundary for report generation."""
