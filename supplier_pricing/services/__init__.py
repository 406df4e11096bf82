"""Pipeline services: mapping, validation, pricing and collaborators."""
