"""Service layer of the quiz engine."""
