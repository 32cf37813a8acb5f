"""Domain logic: gamification, courses, generation, search, recommendations, analytics."""
