"""Legal lead intake: conversational classification, field collection and lead submission."""
