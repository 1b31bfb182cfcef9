"""Domain layer: models, synthetic data, part metrics and stock projection."""
