# Availability module - recurring patterns and per-date overrides
