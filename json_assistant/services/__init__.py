"""Pipeline stages and collaborators of the JSON assistant."""
