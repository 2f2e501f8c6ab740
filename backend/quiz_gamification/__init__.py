"""Quiz scoring and gamification service."""
