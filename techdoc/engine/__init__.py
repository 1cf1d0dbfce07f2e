"""TechDoc Engine — Configuration, error hierarchy, structured logging."""
