"""Features module - covariate selection, correlation and clustering."""
