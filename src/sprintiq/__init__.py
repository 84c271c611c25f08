"""SprintiQ story-training ingestion."""
